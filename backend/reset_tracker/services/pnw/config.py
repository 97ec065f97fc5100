"""Politics & War API config. Credentials from settings (PNW_API_KEY in .env) or PnwConfig args."""
from reset_tracker.config import settings
from reset_tracker.core.constants import HTTP_TIMEOUT_SECONDS

DEFAULT_BASE_URL = "https://api.politicsandwar.com/graphql"


class PnwConfig:
    """API key, endpoint and timeout for the Politics & War GraphQL API."""

    __slots__ = ("api_key", "base_url", "timeout")

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.api_key = (api_key if api_key is not None else settings.pnw_api_key).strip()
        self.base_url = (base_url or settings.pnw_api_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def params(self) -> dict[str, str]:
        """Query-string auth: the API takes the key as ?api_key=..."""
        return {"api_key": self.api_key}

    def headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "Accept": "application/json"}
