import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
import yaml

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.getscraping.io"
DEFAULT_CONFIG_FILENAME = "getscraping.yaml"

CONFIG_PATH_ENV = "GETSCRAPING_CONFIG"
API_KEY_ENV = "GETSCRAPING_API_KEY"
API_URL_ENV = "GETSCRAPING_API_URL"


@dataclass(frozen=True)
class ClientConfig:
    """
    Static configuration for a GetScrapingClient.

    Values can be overridden via getscraping.yaml and the GETSCRAPING_*
    environment variables. api_url only needs changing for a self-hosted
    deployment.
    """

    # API
    api_key: str = ""
    api_url: str = DEFAULT_API_URL
    user_agent: str = "getscraping-python"

    # Retries
    retry_delay_s: float = 0.2
    retry_jitter_s: float = 0.0

    # HTTP client tuning
    http_total_timeout_s: float = 60.0
    http_connect_timeout_s: float = 10.0
    timeout_grace_s: float = 5.0  # added on top of a request's timeout_millis

    def __repr__(self) -> str:
        masked = "***" if self.api_key else "''"
        return f"ClientConfig(api_key={masked}, api_url={self.api_url!r})"


def load_client_config(path: str | Path | None = None) -> ClientConfig:
    """
    Load ClientConfig from YAML if present; otherwise use defaults.

    By default, looks for $GETSCRAPING_CONFIG, then getscraping.yaml in the
    current directory. GETSCRAPING_API_KEY / GETSCRAPING_API_URL win over
    the file.
    """

    if path is None:
        path = os.environ.get(CONFIG_PATH_ENV) or Path.cwd() / DEFAULT_CONFIG_FILENAME

    path = Path(path)
    config = ClientConfig()

    if not path.exists():
        logger.info("Config file not found at %s, using defaults", path)
    else:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            logger.warning("Expected mapping in %s, got %s, using defaults", path, type(data).__name__)
        else:
            allowed_keys = {f.name for f in fields(ClientConfig)}
            unknown = set(data) - allowed_keys
            if unknown:
                logger.warning("Ignoring unknown config keys in %s: %s", path, sorted(unknown))
            config = ClientConfig(**{k: v for k, v in data.items() if k in allowed_keys})

    overrides = {}
    if os.environ.get(API_KEY_ENV):
        overrides["api_key"] = os.environ[API_KEY_ENV]
    if os.environ.get(API_URL_ENV):
        overrides["api_url"] = os.environ[API_URL_ENV]
    return replace(config, **overrides) if overrides else config
