"""
Rendu serveur d'un bloc : réconciliation des attributs + appel du template.

Hors édition, un bloc ajouté mais jamais sauvegardé n'a aucun attribut (pas même
les defaults) : on complète avec les defaults du schéma. En édition, l'éditeur
envoie déjà les valeurs de son formulaire, on n'y touche pas.
"""
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .models import BlockDefinition
from .templates import TemplateRenderer

EDIT_CONTEXT = "edit"


@dataclass(frozen=True)
class RenderContext:
    """Paramètre `context` de la requête de rendu ("edit" = aperçu éditeur)."""
    context: Optional[str] = None

    @property
    def is_edit_preview(self) -> bool:
        return self.context == EDIT_CONTEXT

    @property
    def template_types(self):
        return ("preview", "block") if self.is_edit_preview else "block"


def reconcile_attributes(block: BlockDefinition, attributes: Dict[str, Any],
                         is_edit_preview: bool) -> Dict[str, Any]:
    """Copie de `attributes` complétée des defaults manquants (hors aperçu)."""
    final = dict(attributes)
    if is_edit_preview:
        return final
    for name, fdef in block.fields.items():
        if name not in final and fdef.default is not None:
            final[name] = deepcopy(fdef.default)
    return final


def render_block_template(block: BlockDefinition, attributes: Optional[Dict[str, Any]],
                          templates: TemplateRenderer,
                          context: Optional[RenderContext] = None) -> str:
    ctx   = context or RenderContext()
    final = reconcile_attributes(block, attributes or {}, ctx.is_edit_preview)
    tctx  = templates.context(block, final, ctx.is_edit_preview)
    return templates.template_part(block.name, ctx.template_types, tctx)


@dataclass(frozen=True)
class BlockRenderRequest:
    """
    Callback de rendu d'un bloc enregistré.
    Garde sa propre copie de la définition : modifier la Block Map après
    l'enregistrement ne change pas le rendu.
    """
    block: BlockDefinition
    templates: TemplateRenderer

    @classmethod
    def capture(cls, block: BlockDefinition, templates: TemplateRenderer) -> "BlockRenderRequest":
        return cls(block=block.model_copy(deep=True), templates=templates)

    def __call__(self, attributes: Optional[Dict[str, Any]] = None,
                 context: Optional[RenderContext] = None) -> str:
        return render_block_template(self.block, attributes, self.templates, context)
