# orderdesk/settings/base.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class OrderDeskBaseSettings(BaseSettings):
    """
    Base for every settings section.

    Fields declare their environment variable through `alias`; passing the
    field name directly is also accepted (handy in tests).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )
