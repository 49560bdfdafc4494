"""Centralized branding constants: app name, version and user agent."""


class AppBranding:
    """Application identity constants."""

    APP_NAME = "ModUpdater"
    HOST_NAME = "the client"
    VERSION = "1.0.0"

    @classmethod
    def window_title(cls) -> str:
        return f"{cls.APP_NAME}  v{cls.VERSION}"

    @classmethod
    def user_agent(cls) -> str:
        return f"{cls.APP_NAME}/{cls.VERSION}"
