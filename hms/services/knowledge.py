"""
Anatomy and disease reference data.

Read-only JSON shipped in ``hms/data``; loaded once per process.
"""
import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Optional

DATA_DIR = Path(__file__).resolve().parent.parent / 'data'

ANATOMY_TYPES = ('ear', 'nose', 'throat', 'dental', 'kidney', 'lungs', 'skeleton')
CUSTOM_DIAGNOSIS_OPTION = 'OTHER_CUSTOM'
ENT_CATEGORIES = ('ear', 'nose', 'throat', 'general')

ANATOMY_MODELS = [
    {'type': 'ear', 'label': 'Ear', 'description': 'Ear anatomy and related conditions'},
    {'type': 'throat', 'label': 'Throat', 'description': 'Throat anatomy and related conditions'},
    {'type': 'dental', 'label': 'Dental & Oral', 'description': 'Dental and oral anatomy'},
]

# (substrings, anatomy models); first hit wins
SPECIALIZATION_MODELS = [
    (('dentist', 'dental', 'oral surgeon', 'oral surgery'), ['dental']),
    (('ent', 'otorhinolaryngologist', 'ear', 'nose', 'throat'), ['ear', 'throat']),
    (('family medicine', 'family physician', 'general physician', 'primary care'), ['ear', 'throat']),
    (('pediatrician', 'pediatric'), ['ear', 'throat']),
    (('ophthalmologist', 'eye'), []),
]

_NUMBERED = re.compile(r'^(?:object|mesh)[_ ]?(\d+)$', re.IGNORECASE)


def _load(name: str):
    with open(DATA_DIR / f'{name}.json', encoding='utf-8') as fh:
        return json.load(fh)


@lru_cache(maxsize=None)
def anatomy(anatomy_type: str) -> dict:
    if anatomy_type not in ANATOMY_TYPES:
        raise LookupError(f'Unknown anatomy type: {anatomy_type}')
    return _load(anatomy_type)


@lru_cache(maxsize=1)
def part_aliases() -> dict:
    return _load('part_aliases')


@lru_cache(maxsize=1)
def ent_diagnoses() -> list:
    return _load('ent_diagnoses')


def list_types() -> list[dict]:
    return [
        {'type': t, 'parts': len(anatomy(t)), 'diseases': sum(len(p['diseases']) for p in anatomy(t).values())}
        for t in ANATOMY_TYPES
    ]


def resolve_part(anatomy_type: str, name: str) -> Optional[str]:
    """Map a part key, anatomical alias or 3D mesh name onto a part key."""
    parts = anatomy(anatomy_type)
    name = (name or '').strip()
    if not name:
        return None
    if name in parts:
        return name
    lower = name.lower()
    for key in parts:
        if key.lower() == lower:
            return key

    mapping = part_aliases().get(anatomy_type, {})
    aliases = mapping.get('aliases', {})
    if name in aliases:
        return aliases[name]
    for alias, key in aliases.items():
        if alias.lower() == lower:
            return key

    m = _NUMBERED.match(name)
    if m:
        return mapping.get('objectNumbers', {}).get(str(int(m.group(1))))
    return None


def get_part(anatomy_type: str, name: str) -> dict:
    key = resolve_part(anatomy_type, name)
    if not key:
        raise LookupError(f'Unknown {anatomy_type} part: {name}')
    return {'key': key, **anatomy(anatomy_type)[key]}


def get_disease(anatomy_type: str, disease_id: str) -> dict:
    for key, part in anatomy(anatomy_type).items():
        for disease in part['diseases']:
            if disease['id'] == disease_id:
                return {**disease, 'anatomyType': anatomy_type, 'partKey': key, 'partName': part['partName']}
    raise LookupError(f'Disease not found: {disease_id}')


def search_diseases(query: str, types=None) -> list[dict]:
    q = (query or '').strip().lower()
    if not q:
        return []
    hits = []
    for t in types or ANATOMY_TYPES:
        for key, part in anatomy(t).items():
            for disease in part['diseases']:
                haystack = [disease['name'], disease.get('description', '')] + list(disease.get('symptoms') or [])
                if any(q in text.lower() for text in haystack):
                    hits.append({
                        'anatomyType': t,
                        'partKey': key,
                        'partName': part['partName'],
                        'id': disease['id'],
                        'name': disease['name'],
                        'description': disease.get('description', ''),
                    })
    return hits


def search_ent_diagnoses(query: str='', category: Optional[str]=None) -> list[dict]:
    rows = ent_diagnoses()
    if category:
        rows = [d for d in rows if d['category'] == category]
    q = (query or '').strip().lower()
    if not q:
        return list(rows)
    return [d for d in rows if q in d['name'].lower() or q in d['code'].lower()]


def models_for_specialization(specialization: Optional[str]) -> list[str]:
    if not specialization:
        return [m['type'] for m in ANATOMY_MODELS]
    lower = specialization.lower()
    for needles, models in SPECIALIZATION_MODELS:
        if any(n in lower for n in needles):
            return list(models)
    return []


def available_models(specialization: Optional[str]) -> list[dict]:
    wanted = models_for_specialization(specialization)
    return [m for m in ANATOMY_MODELS if m['type'] in wanted]
