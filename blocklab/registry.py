"""
Registry des blocs enregistrés — identifiant → (schéma d'attributs, callback de rendu).
Même identifiant enregistré deux fois → le dernier gagne.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional

from .schema import AttributeSchema

log = logging.getLogger(__name__)

RenderCallback = Callable[..., str]


@dataclass(frozen=True)
class BlockType:
    name: str
    attributes: AttributeSchema
    render_callback: RenderCallback

    def render(self, attributes=None, context=None) -> str:
        return self.render_callback(attributes or {}, context)


class BlockRegistry:
    def __init__(self):
        self._blocks: Dict[str, BlockType] = {}

    def register(self, name: str, attributes: AttributeSchema, render_callback: RenderCallback) -> BlockType:
        if name in self._blocks:
            log.info("Bloc '%s' déjà enregistré, remplacé", name)
        block_type = BlockType(name=name, attributes=attributes, render_callback=render_callback)
        self._blocks[name] = block_type
        return block_type

    def unregister(self, name: str) -> Optional[BlockType]:
        return self._blocks.pop(name, None)

    def clear(self):
        self._blocks.clear()

    def replace(self, other: "BlockRegistry"):
        """Remplace tout le contenu par celui de `other` en une seule affectation."""
        self._blocks = dict(other._blocks)

    def get(self, name: str) -> Optional[BlockType]:
        return self._blocks.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._blocks

    def __iter__(self) -> Iterator[str]:
        return iter(self._blocks)

    def __len__(self) -> int:
        return len(self._blocks)
