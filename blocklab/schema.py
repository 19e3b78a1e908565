"""
Traduction FieldDefinition → schéma d'attributs (format register_block_type).

{"fields": {"color": {"type": "string", "default": "red"}}}
  → {"color": {"type": "string", "default": "red"}}

Un champ "array" ne porte jamais de default : l'éditeur s'en servirait pour
« corriger » les tableaux vides. Le default ne sert qu'à pré-remplir le formulaire.
"""
from copy import deepcopy
import string
from typing import Any, Dict

from .models import BlockDefinition

AttributeSchema = Dict[str, Dict[str, Any]]

_PASSTHROUGH = ("source", "meta", "selector", "query")
_BLOCK_PREFIX = "block-"


def _has_value(value: Any) -> bool:
    """Vide = absent, None, "" ou conteneur vide. False et 0 sont des valeurs."""
    if value is None:
        return False
    if isinstance(value, (str, list, dict, tuple)):
        return len(value) > 0
    return True


def get_block_attributes(block: BlockDefinition) -> AttributeSchema:
    attributes: AttributeSchema = {}

    for field_name, field in block.fields.items():
        attr: Dict[str, Any] = {}
        attr["type"] = field.type if _has_value(field.type) else "string"

        if _has_value(field.default):
            attr["default"] = deepcopy(field.default)

        if attr["type"] == "array":
            attr.pop("default", None)
            attr["items"] = {"type": "string"}

        for key in _PASSTHROUGH:
            value = getattr(field, key)
            if _has_value(value):
                attr[key] = deepcopy(value)

        attributes[field_name] = attr

    return attributes


def registration_name(block_key: str) -> str:
    """my_block → my-block ; 1existing → block-1existing."""
    name = block_key.replace("_", "-")
    if name and name[0] in string.digits:
        name = _BLOCK_PREFIX + name
    return name
