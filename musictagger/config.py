from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    project_file: str = ""
    # Where the import dialog starts; purely a convenience.
    music_directory: str = ""
    volume: int = 50
    random: bool = False
    repeat: bool = False
    # Save the project after every change made through the API.
    autosave: bool = True


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config.json"


def config_path() -> Path:
    env = os.environ.get("MUSICTAGGER_CONFIG", "").strip()
    return Path(env).expanduser() if env else DEFAULT_CONFIG_PATH


def load_config(path: Optional[Path] = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return AppConfig()
    if not isinstance(data, dict):
        return AppConfig()

    cfg = AppConfig()
    for f in fields(AppConfig):
        if f.name not in data:
            continue
        default = getattr(cfg, f.name)
        value = data[f.name]
        try:
            if isinstance(default, bool):
                setattr(cfg, f.name, bool(value))
            elif isinstance(default, int):
                setattr(cfg, f.name, int(value))
            else:
                setattr(cfg, f.name, str(value))
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid config value %s=%r", f.name, value)
    cfg.volume = max(0, min(100, cfg.volume))
    return cfg


def save_config(cfg: AppConfig, path: Optional[Path] = None) -> None:
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(asdict(cfg), ensure_ascii=False, indent=2), encoding="utf-8")
    tmp.replace(path)


LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a console handler to the package logger.

    Level comes from the argument, then MUSICTAGGER_LOG_LEVEL, then INFO.
    Calling it again only updates the level.
    """
    name = (level or os.environ.get("MUSICTAGGER_LOG_LEVEL", "") or "INFO").upper()
    pkg_logger = logging.getLogger(__name__.rsplit(".", 1)[0])
    pkg_logger.setLevel(getattr(logging, name, logging.INFO))
    if not pkg_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        pkg_logger.addHandler(handler)
        pkg_logger.propagate = False
