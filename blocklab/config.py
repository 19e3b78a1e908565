"""
Configuration — lue depuis l'environnement.

BLOCKLAB_DB_PATH        chemin du fichier SQLite
BLOCKLAB_TEMPLATE_DIRS  dossiers de templates, séparés par os.pathsep,
                        du plus prioritaire (thème enfant) au moins prioritaire
BLOCKLAB_ASSETS_URL     URL publique des assets éditeur (js/, css/)
BLOCKLAB_VERSION        token de version (cache-busting)
BLOCKLAB_ADMIN_TOKEN    token des endpoints d'écriture
"""
import os
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field

from . import __version__

_ROOT = Path(__file__).parent.parent


class Settings(BaseModel):
    db_path:       str        = str(_ROOT / "data" / "blocklab.db")
    template_dirs: List[Path] = Field(default_factory=lambda: [_ROOT / "theme"])
    assets_url:    str        = "/assets"
    version:       str        = __version__
    admin_token:   str        = "changeme"

    @property
    def db_url(self) -> str:
        return f"sqlite:///{self.db_path}"

    def asset_url(self, relative: str) -> str:
        return f"{self.assets_url.rstrip('/')}/{relative.lstrip('/')}"


def load_settings() -> Settings:
    values = {}
    if os.getenv("BLOCKLAB_DB_PATH"):
        values["db_path"] = os.environ["BLOCKLAB_DB_PATH"]
    if os.getenv("BLOCKLAB_TEMPLATE_DIRS"):
        values["template_dirs"] = [
            Path(p) for p in os.environ["BLOCKLAB_TEMPLATE_DIRS"].split(os.pathsep) if p
        ]
    if os.getenv("BLOCKLAB_ASSETS_URL"):
        values["assets_url"] = os.environ["BLOCKLAB_ASSETS_URL"]
    if os.getenv("BLOCKLAB_VERSION"):
        values["version"] = os.environ["BLOCKLAB_VERSION"]
    if os.getenv("BLOCKLAB_ADMIN_TOKEN"):
        values["admin_token"] = os.environ["BLOCKLAB_ADMIN_TOKEN"]
    return Settings(**values)
