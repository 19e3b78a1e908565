"""
Block Lab — blocs de contenu déclarés en JSON, rendus côté serveur.

    >>> from blocklab import Loader, load_settings
    >>> loader = Loader(load_settings()).init()
    >>> loader.registry.get("testimonial").render({"author": "Ada"})
"""
__version__ = "0.1.0"

from .models import BlockDefinition, FieldDefinition, BlockFile
from .schema import get_block_attributes, registration_name
from .output import OutputValueFilter, UserLookup, DatabaseUserLookup, user_resolver
from .registry import BlockRegistry, BlockType
from .templates import TemplateRenderer, TemplateContext, locate_template, locate_block_files
from .render import RenderContext, BlockRenderRequest, reconcile_attributes, render_block_template
from .loader import BlockCatalog, Loader, load_blocks, parse_block_source
from .config import Settings, load_settings

__all__ = [
    "BlockDefinition", "FieldDefinition", "BlockFile",
    "get_block_attributes", "registration_name",
    "OutputValueFilter", "UserLookup", "DatabaseUserLookup", "user_resolver",
    "BlockRegistry", "BlockType",
    "TemplateRenderer", "TemplateContext", "locate_template", "locate_block_files",
    "RenderContext", "BlockRenderRequest", "reconcile_attributes", "render_block_template",
    "BlockCatalog", "Loader", "load_blocks", "parse_block_source",
    "Settings", "load_settings",
]
