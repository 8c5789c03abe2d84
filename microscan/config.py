import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, ValidationError

DEFAULT_UA = (
    "Mozilla/5.0 (Linux; Android 13; Pixel 7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, validate_default=True)

    base_url: HttpUrl = Field(default="https://www.microcenter.com", alias="MICROSCAN_BASE_URL")
    image_host: HttpUrl = Field(default="https://productimages.microcenter.com", alias="MICROSCAN_IMAGE_HOST")
    retailer_domain: str = Field(default="microcenter.com", alias="MICROSCAN_RETAILER_DOMAIN")
    default_store_id: str = Field(default="071", alias="MICROSCAN_STORE_ID")
    timeout_s: float = Field(default=20.0, gt=0, alias="MICROSCAN_TIMEOUT")
    min_request_interval_s: float = Field(default=2.0, ge=0, alias="MICROSCAN_MIN_INTERVAL")
    user_agent: str = Field(default=DEFAULT_UA, alias="MICROSCAN_USER_AGENT")
    cache_dir: Path = Field(default=Path("data/raw_html"), alias="MICROSCAN_CACHE_DIR")
    cache_ttl_s: float = Field(default=900.0, ge=0, alias="MICROSCAN_CACHE_TTL")

    @property
    def site(self) -> str:
        # HttpUrl normalises to a trailing slash
        return str(self.base_url).rstrip("/")

    @property
    def images(self) -> str:
        return str(self.image_host).rstrip("/")


def _load_dotenv():
    # Load from repo root if present, otherwise rely on environment variables.
    root_env = Path(__file__).resolve().parents[1] / ".env"
    if root_env.exists():
        load_dotenv(root_env)
    else:
        load_dotenv()


@lru_cache()
def get_settings() -> Settings:
    _load_dotenv()
    env = {k: v for k, v in os.environ.items() if k.startswith("MICROSCAN_")}
    try:
        return Settings(**env)
    except ValidationError as exc:
        bad = [str(e["loc"][0]) for e in exc.errors()]
        detail = f"Invalid microscan environment variables: {', '.join(bad)}"
        raise RuntimeError(detail) from exc
