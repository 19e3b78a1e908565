"""
Loader — charge les définitions de blocs, les fusionne et les enregistre.

Sources, de la moins à la plus prioritaire :
  1. blocks/blocks.json des dossiers de thème (parent puis enfant)
  2. posts "block_lab" publiés (post_content = même format JSON)

Fusion au niveau du bloc : une source plus prioritaire remplace le bloc entier.
Une source illisible (JSON invalide ou structure invalide) est ignorée.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session, sessionmaker

from . import database
from .config import Settings
from .database import db_list_published_block_posts
from .models import BlockDefinition, BlockFile
from .output import DatabaseUserLookup, OutputValueFilter, user_resolver
from .registry import BlockRegistry
from .render import BlockRenderRequest
from .schema import get_block_attributes, registration_name
from .templates import TemplateRenderer, locate_block_files

log = logging.getLogger(__name__)

SCRIPT_HANDLE = "block-lab-blocks"
STYLE_HANDLE  = "block-lab-editor-css"
SCRIPT_DEPS   = ["wp-i18n", "wp-element", "wp-blocks", "wp-components", "wp-api-fetch"]
JS_VARIABLE   = "blockLabBlocks"


@dataclass(frozen=True)
class BlockCatalog:
    """Block Map fusionnée + sa sérialisation JSON (transmise telle quelle à l'éditeur)."""
    blocks: Dict[str, BlockDefinition] = field(default_factory=dict)
    json: str = "{}"


# ── Chargement / fusion ────────────────────────────────────────────────────────

def parse_block_source(text: Optional[str], label: str = "source") -> Optional[Dict[str, BlockDefinition]]:
    """JSON → {block_key: BlockDefinition}, ou None si invalide."""
    try:
        return BlockFile.model_validate_json(text or "").root
    except ValidationError as e:
        log.warning("Définitions ignorées (%s) : %d erreur(s)", label, e.error_count())
        return None


def serialize_blocks(blocks: Dict[str, BlockDefinition]) -> str:
    return json.dumps({key: block.to_json_dict() for key, block in blocks.items()}, ensure_ascii=False)


def load_blocks(files: Iterable[Path], posts: Iterable[str] = ()) -> BlockCatalog:
    """
    files : blocks.json, le moins prioritaire en premier
    posts : post_content des posts publiés (appliqués après les fichiers)
    """
    blocks: Dict[str, BlockDefinition] = {}

    for path in files:
        try:
            text = Path(path).read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Lecture impossible %s : %s", path, e)
            continue
        data = parse_block_source(text, str(path))
        if data is not None:
            blocks.update(data)

    for i, content in enumerate(posts):
        data = parse_block_source(content, f"post #{i}")
        if data is not None:
            blocks.update(data)

    return BlockCatalog(blocks=blocks, json=serialize_blocks(blocks))


# ── Loader ─────────────────────────────────────────────────────────────────────

class Loader:
    """
    Usage:
        >>> loader = Loader(load_settings()).init()
        >>> loader.registry.get("my-block").render({"title": "Hello"})
    """

    def __init__(
        self,
        settings: Settings,
        registry: Optional[BlockRegistry] = None,
        templates: Optional[TemplateRenderer] = None,
        session_factory: Optional[sessionmaker] = None,
    ):
        self.settings        = settings
        self.registry        = registry if registry is not None else BlockRegistry()
        if session_factory is None and database.ENGINE is None:
            database.init_db_from_settings(settings)
        self.session_factory = session_factory or database.SessionLocal
        self.output_filter   = templates.output_filter if templates is not None else OutputValueFilter()
        if "user" not in self.output_filter:
            self.output_filter.register("user", user_resolver(DatabaseUserLookup(self.session_factory)))
        self.templates       = templates or TemplateRenderer(settings.template_dirs, self.output_filter)
        self.catalog         = BlockCatalog()
        self.assets = {
            "entry":        settings.asset_url("js/editor.blocks.js"),
            "editor_style": settings.asset_url("css/blocks.editor.css"),
        }

    def init(self) -> "Loader":
        self.retrieve_blocks()
        self.dynamic_block_loader()
        return self

    def reload(self) -> "Loader":
        """Reconstruit catalog + registry à part, puis remplace d'un coup (rien ne change en cas d'erreur)."""
        catalog = self._build_catalog()
        staging = BlockRegistry()
        self.dynamic_block_loader(catalog, staging)
        self.catalog = catalog
        self.registry.replace(staging)
        return self

    @property
    def blocks(self) -> str:
        return self.catalog.json

    def _published_posts(self) -> list:
        db: Session = self.session_factory()
        try:
            return [p.post_content for p in db_list_published_block_posts(db)]
        finally:
            db.close()

    def _build_catalog(self) -> BlockCatalog:
        files = locate_block_files(self.settings.template_dirs)
        catalog = load_blocks(files, self._published_posts())
        log.info("%d bloc(s) chargé(s) depuis %d fichier(s)", len(catalog.blocks), len(files))
        return catalog

    def retrieve_blocks(self) -> BlockCatalog:
        self.catalog = self._build_catalog()
        return self.catalog

    def dynamic_block_loader(self, catalog: Optional[BlockCatalog] = None,
                             registry: Optional[BlockRegistry] = None):
        catalog  = catalog if catalog is not None else self.catalog
        registry = registry if registry is not None else self.registry
        for block_key, block in catalog.blocks.items():
            registry.register(
                registration_name(block_key),
                get_block_attributes(block),
                BlockRenderRequest.capture(block, self.templates),
            )

    def editor_assets(self) -> Dict[str, Any]:
        version = self.settings.version
        return {
            "script": {
                "handle":    SCRIPT_HANDLE,
                "src":       self.assets["entry"],
                "deps":      SCRIPT_DEPS,
                "version":   version,
                "in_footer": True,
            },
            "inline_script": self.inline_script(),
            "style": {
                "handle":  STYLE_HANDLE,
                "src":     self.assets["editor_style"],
                "deps":    [],
                "version": version,
            },
        }

    def inline_script(self) -> str:
        return f"const {JS_VARIABLE} = {self.catalog.json}"

    def get_output_value(self, value: Any, control: Optional[str], echo: bool) -> Any:
        return self.output_filter.resolve(value, control, echo)
