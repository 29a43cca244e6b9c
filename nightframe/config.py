import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import tomli as tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:  # Python < 3.11
        import tomli as tomllib

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "nightframe" / "config.toml"
CONFIG_ENV_VAR = "NIGHTFRAME_CONFIG"

DEFAULT_OPENNGC_URL = "https://raw.githubusercontent.com/mattiaverga/OpenNGC/master/database_files/NGC.csv"


class Config:
    def __init__(self, data: dict):
        self._data = data

    def _section(self, name: str) -> dict:
        return self._data.get(name, {}) or {}

    @property
    def catalog_enabled(self) -> bool:
        return bool(self._section("catalog").get("enabled", True))

    @property
    def openngc_url(self) -> str:
        return self._section("catalog").get("openngc_url", DEFAULT_OPENNGC_URL)

    @property
    def catalog_timeout_s(self) -> float:
        return float(self._section("catalog").get("timeout_s", 10.0))

    @property
    def catalog_ttl_hours(self) -> float:
        return float(self._section("catalog").get("ttl_hours", 24.0))

    @property
    def catalog_retry_after_s(self) -> float:
        return float(self._section("catalog").get("retry_after_s", 300.0))

    @property
    def curated_path(self) -> Path | None:
        path = self._section("catalog").get("curated_path", None)
        if not path:
            return None
        return Path(path).expanduser()

    @property
    def sampling_step_min(self) -> int:
        return int(self._section("sampling").get("step_min", 10))

    @property
    def scoring_overrides(self) -> dict:
        return dict(self._section("scoring"))

    @property
    def default_min_alt_deg(self) -> float:
        return float(self._section("defaults").get("min_alt_deg", 10.0))

    @property
    def default_max_mag(self) -> float:
        return float(self._section("defaults").get("max_mag", 12.0))

    @property
    def default_limit(self) -> int:
        return int(self._section("defaults").get("limit", 200))

    @property
    def default_openngc_max(self) -> int:
        return int(self._section("defaults").get("openngc_max", 3000))

    @property
    def default_mount(self) -> str:
        return self._section("defaults").get("mount", "tracker")

    @property
    def server_host(self) -> str:
        return self._section("server").get("host", "127.0.0.1")

    @property
    def server_port(self) -> int:
        return int(self._section("server").get("port", 8000))


def load_config(path: Path | None = None) -> Config:
    explicit_path = path
    if path is None and os.environ.get(CONFIG_ENV_VAR):
        explicit_path = path = Path(os.environ[CONFIG_ENV_VAR]).expanduser()
    path = path or DEFAULT_CONFIG_PATH

    if not path.exists():
        if explicit_path is not None:
            raise FileNotFoundError(f"Config file not found: {path}")
        # Return default config if default file missing
        return Config({})

    with open(path, "rb") as f:
        data = tomllib.load(f)

    return Config(data)
