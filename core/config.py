from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import os

from services.cooldowns import DEFAULT_COOLDOWN_MS


@dataclass
class BotConfig:
    token: str
    database_url: str
    prefix: str = "!"
    cooldown_ms: int = DEFAULT_COOLDOWN_MS
    guild_ids: Optional[List[int]] = None
    owner_ids: Optional[List[int]] = None
    log_level: str = "INFO"

    def sanitize(self) -> Dict[str, Any]:
        data = asdict(self)
        if data.get("token"):
            data["token"] = "****"
        if data.get("database_url") and "@" in data["database_url"]:
            data["database_url"] = "****"
        return data


def _parse_int_list(raw: Optional[str]) -> Optional[List[int]]:
    if not raw:
        return None
    values: List[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            values.append(int(part))
        except ValueError:
            continue
    return values or None


def _normalize_list(source: Any) -> Optional[List[int]]:
    if source is None:
        return None
    if isinstance(source, list):
        result: List[int] = []
        for item in source:
            try:
                result.append(int(item))
            except (TypeError, ValueError):
                continue
        return result or None
    if isinstance(source, str):
        return _parse_int_list(source)
    return None


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        return {}
    text = config_path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    return json.loads(text)


def load_config(config_path: Optional[Path] = None) -> BotConfig:
    """Resolve configuration from the environment, falling back to config.json.

    A missing token or database URL is fatal; nothing should try to connect.
    """
    if config_path is None:
        config_path = Path(__file__).resolve().parents[1] / "config.json"
    file_data = _read_config_file(config_path)

    token = os.getenv("DISCORD_TOKEN") or file_data.get("token")
    if not token:
        raise RuntimeError("DISCORD_TOKEN environment variable or token in config.json is required")

    database_url = os.getenv("DATABASE_URL") or file_data.get("database_url")
    if not database_url:
        raise RuntimeError("DATABASE_URL environment variable or database_url in config.json is required")

    prefix = os.getenv("BOT_PREFIX") or file_data.get("prefix") or "!"

    cooldown_raw = os.getenv("COMMAND_COOLDOWN_MS") or file_data.get("cooldown_ms")
    try:
        cooldown_ms = int(cooldown_raw) if cooldown_raw is not None else DEFAULT_COOLDOWN_MS
    except (TypeError, ValueError):
        raise RuntimeError(f"COMMAND_COOLDOWN_MS must be an integer, got {cooldown_raw!r}")

    guild_ids = _normalize_list(os.getenv("DISCORD_GUILD_IDS") or file_data.get("guild_ids"))
    owner_ids = _normalize_list(os.getenv("DISCORD_OWNER_IDS") or file_data.get("owner_ids"))
    log_level = (os.getenv("LOG_LEVEL") or file_data.get("log_level") or "INFO").upper()

    return BotConfig(
        token=token.strip(),
        database_url=database_url,
        prefix=prefix,
        cooldown_ms=cooldown_ms,
        guild_ids=guild_ids,
        owner_ids=owner_ids,
        log_level=log_level,
    )
