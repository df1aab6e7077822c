from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PARAM_MARKER = "\nParameter name:"


class Settings(BaseSettings):
    """Error pipeline settings loaded from environment variables.

    Every field can be set with a ``FAULTLINE_`` prefixed env var
    (``FAULTLINE_DEBUG_MODE=true``). In development a ``.env`` file is read too.
    Status overrides, handler chains and fallback pages are code-level
    registrations on ``ErrorPipeline`` and are not part of these settings.
    """

    # Include the formatted traceback in ResponseStatus.stack_trace.
    # Never enable in production: traces leak file paths and source lines.
    debug_mode: bool = False

    # Failure messages are split on this marker to separate the friendly text
    # from a trailing "which parameter" annotation.
    param_marker: str = DEFAULT_PARAM_MARKER

    # CreateUser -> CreateUserResponse
    response_suffix: str = "Response"

    model_config = SettingsConfigDict(
        env_prefix="FAULTLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
