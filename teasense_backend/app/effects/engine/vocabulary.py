# teasense_backend/app/effects/engine/vocabulary.py
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple
import yaml

from .models import EffectDefinition

# Purpose:
# Define and load the closed **effect vocabulary** shared by every table.
# Legacy names (e.g. "calming", "energizing") resolve to one canonical id so a
# tag never gets scored twice under two spellings.

def _norm(tag: str) -> str:
    return (tag or "").strip().lower().replace("_", "-")


class EffectVocabulary:
    # Purpose:
    # Construct with canonical effect definitions + optional family groupings.
    def __init__(self, effects: Dict[str, EffectDefinition], families: Optional[Dict[str, List[str]]] = None):
        self.effects = effects
        self.families = families or {}
        self.allowed: Set[str] = set(effects)
        # alias -> canonical id; canonical ids map to themselves
        self.aliases: Dict[str, str] = {eid: eid for eid in effects}
        for eid, d in effects.items():
            for a in d.aliases:
                self.aliases[_norm(a)] = eid

    def canonical(self, tag: str) -> Optional[str]:
        return self.aliases.get(_norm(tag))

    def validate_effect(self, tag: str) -> Tuple[bool, str]:
        # Purpose:
        # Accept canonical ids and known aliases; report anything else.
        if not tag or not str(tag).strip():
            return False, "Effect id must be a non-empty string"
        if self.canonical(tag) is None:
            return False, f"Unknown effect {tag}"
        return True, ""

    def display_name(self, effect_id: str) -> str:
        d = self.effects.get(effect_id)
        return d.name if d else effect_id.replace("-", " ").title()

    def description(self, effect_id: str) -> str:
        d = self.effects.get(effect_id)
        return d.description if d else ""

    def family_of(self, effect_id: str) -> Optional[str]:
        for fam, members in self.families.items():
            if effect_id in members:
                return fam
        return None


def vocabulary_from_dict(data: Dict) -> EffectVocabulary:
    effects = {eid: EffectDefinition(**spec) for eid, spec in (data.get("effects") or {}).items()}
    return EffectVocabulary(effects, data.get("families", {}))


# Purpose:
# Load a vocabulary YAML of the shape:
# effects:
#   soothing: {name: Soothing, description: ..., aliases: [calming]}
# families:
#   calm: [soothing, peaceful]
def load_vocabulary(path: Path) -> EffectVocabulary:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return vocabulary_from_dict(data)
