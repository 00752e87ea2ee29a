"""Configuration for molconsole sessions."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

CONFIG_ENV = "MOLCONSOLE_CONFIG"
DOWNLOAD_URL_ENV = "MOLCONSOLE_DOWNLOAD_URL"


def default_config_path() -> Path:
    return Path.home() / ".molconsole" / "config.json"


@dataclass
class ConsoleConfig:
    download_url: str = "https://files.rcsb.org/download/{id}.pdb"  # {id} -> PDB id
    structure_format: str = "pdb"
    preset: str = "default"  # representation preset applied after loading
    timeout: float = 30.0  # download timeout, seconds
    prompt: str = "molconsole>"

    def structure_url(self, pdb_id: str) -> str:
        return self.download_url.format(id=pdb_id)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ConsoleConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})


def load_config(path: Optional[Union[str, Path]] = None) -> ConsoleConfig:
    """
    Load configuration.

    Lookup order for the file: `path`, $MOLCONSOLE_CONFIG, ~/.molconsole/config.json.
    A missing or unreadable file yields the defaults. $MOLCONSOLE_DOWNLOAD_URL
    overrides the download URL template.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV) or default_config_path()
    config_path = Path(path)

    config = ConsoleConfig()
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not read config %s (%s); using defaults", config_path, e)
        else:
            if isinstance(data, dict):
                config = ConsoleConfig.from_dict(data)
            else:
                logger.warning("Config %s is not a JSON object; using defaults", config_path)

    url = os.environ.get(DOWNLOAD_URL_ENV)
    if url:
        config.download_url = url
    return config
