"""
Templates de blocs — localisation dans les dossiers de thème + rendu Jinja2.

Ordre de recherche : dossiers dans l'ordre de Settings.template_dirs
(thème enfant d'abord, thème parent ensuite).

    blocks/blocks.json              définitions de blocs (fusionnées)
    blocks/block-{name}.html        template front
    blocks/preview-{name}.html      template d'aperçu éditeur (optionnel)

Les templates reçoivent `attributes`, `block`, et les helpers
`block_field(name, echo=True)` / `block_value(name)`.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup, escape

from .models import BlockDefinition
from .output import OutputValueFilter

log = logging.getLogger(__name__)

BLOCKS_JSON = "blocks/blocks.json"


# ── Localisation ───────────────────────────────────────────────────────────────

def locate_template(
    names: Union[str, Sequence[str]],
    dirs: Iterable[Path],
    single: bool = True,
) -> Union[Optional[Path], List[Path]]:
    """
    Cherche chaque nom relatif dans chaque dossier.

    single=True  → premier fichier trouvé (ou None)
    single=False → tous les fichiers trouvés, du plus prioritaire au moins prioritaire
    """
    if isinstance(names, str):
        names = [names]
    dirs = list(dirs)

    located: List[Path] = []
    for name in names:
        if not name:
            continue
        for d in dirs:
            path = Path(d) / name
            if path.is_file() and path.resolve() not in {p.resolve() for p in located}:
                if single:
                    return path
                located.append(path)

    return located if not single else None


def locate_block_files(dirs: Iterable[Path]) -> List[Path]:
    """Tous les blocks/blocks.json, le moins prioritaire en premier (fusion dans l'ordre)."""
    return list(reversed(locate_template(BLOCKS_JSON, dirs, single=False)))


# ── Contexte de rendu ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TemplateContext:
    """Ce que voit un template : attributs finaux + définition complète du bloc."""
    attributes: Dict[str, Any]
    block: BlockDefinition
    is_edit_preview: bool = False
    output_filter: Optional[OutputValueFilter] = field(default=None, compare=False)

    def _control(self, name: str) -> Optional[str]:
        fdef = self.block.fields.get(name)
        return fdef.control if fdef is not None else None

    def block_value(self, name: str) -> Any:
        """Valeur brute (filtrée, echo=False). Attribut absent → False."""
        value = self.attributes.get(name, False)
        if self.output_filter is not None:
            value = self.output_filter.resolve(value, self._control(name), False)
        return value

    def block_field(self, name: str, echo: bool = True) -> Any:
        """Valeur prête à afficher (echo=True) ; echo=False ≡ block_value."""
        if not echo:
            return self.block_value(name)
        value = self.attributes.get(name, False)
        if self.output_filter is not None:
            value = self.output_filter.resolve(value, self._control(name), True)
        return _to_text(value)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "attributes":      self.attributes,
            "block":           self.block,
            "is_edit_preview": self.is_edit_preview,
            "block_field":     self.block_field,
            "block_value":     self.block_value,
        }


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if value is True:
        return "Yes"
    if value is False:
        return "No"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


# ── Renderer ───────────────────────────────────────────────────────────────────

class TemplateRenderer:
    """Rend `blocks/{type}-{name}.html` avec un TemplateContext explicite."""

    def __init__(self, template_dirs: Iterable[Path], output_filter: Optional[OutputValueFilter] = None):
        self.template_dirs = [Path(d) for d in template_dirs]
        self.output_filter = output_filter or OutputValueFilter()
        self.env = Environment(
            loader=FileSystemLoader([str(d) for d in self.template_dirs]),
            autoescape=select_autoescape(),
        )

    def context(self, block: BlockDefinition, attributes: Dict[str, Any],
                is_edit_preview: bool = False) -> TemplateContext:
        return TemplateContext(
            attributes=attributes,
            block=block,
            is_edit_preview=is_edit_preview,
            output_filter=self.output_filter,
        )

    def template_part(self, name: str, types: Union[str, Sequence[str]], context: TemplateContext) -> str:
        """Premier template trouvé parmi types (ex. ("preview", "block")), rendu en str."""
        if isinstance(types, str):
            types = [types]
        candidates = [f"blocks/{t}-{name}.html" for t in types]

        try:
            template = self.env.select_template(candidates)
        except TemplateNotFound:
            log.warning("Template introuvable pour le bloc '%s' : %s", name, candidates)
            if not context.is_edit_preview:
                return ""
            return str(Markup('<div class="notice notice-warning">Template file <code>%s</code> not found.</div>')
                       % escape(candidates[-1]))

        return template.render(**context.as_dict())
