"""
agent_labs.agent.typology - Keyword classification of after-sales problems.

Customers describe problems in French free text ("l'écran est cassé",
"j'ai reçu le mauvais modèle"). Vector search over the seller-requirements
corpus often returns a neighbouring section (damage instead of wrong
item), so the text is also classified with keyword tables and the
search results are reordered to put the matching sections first.

All matching happens on normalize_key() output: lowercase, no accents,
no punctuation, single spaces.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Sequence

from agent_labs.domain.models import PolicySearchResult, ProblemTypology

MAX_REQUIREMENTS = 3

NO_REQUIREMENTS_FOUND = (
    "Aucune information vendeur pertinente trouvée pour ce type de problème."
)

# Checked in order: the first table with a hit wins.
_TYPOLOGY_KEYWORDS: list[tuple[ProblemTypology, tuple[str, ...]]] = [
    (ProblemTypology.WRONG_ITEM, (
        "mauvais", "pas le bon", "pas la bonne", "a la place", "erreur de modele",
        "produit different", "recu le model", "recu le modele",
    )),
    (ProblemTypology.DAMAGED, ("casse", "endommag", "degat", "fissur", "abime", "brise")),
    (ProblemTypology.MALFUNCTION, (
        "ne s allume", "ne fonctionne", "ne marche", "panne", "defectu",
    )),
    (ProblemTypology.MISSING_PARTS, ("manqu", "incomplet", "accessoire", "piece")),
    (ProblemTypology.TRACKING, ("suivi", "tracking")),
    (ProblemTypology.DELIVERY, ("pas recu", "non recu", "livraison", "colis", "perdu")),
    (ProblemTypology.WARRANTY, ("garantie",)),
    (ProblemTypology.SIZE, ("taille", "trop petit", "trop grand")),
    (ProblemTypology.REFUND, ("rembours",)),
    (ProblemTypology.QUALITY, ("qualite", "non conforme", "description")),
]

# Section id / title hints that mark a search result as matching the typology.
_SECTION_HINTS: dict[ProblemTypology, tuple[str, ...]] = {
    ProblemTypology.WRONG_ITEM: ("wrong", "different", "produit recu different"),
    ProblemTypology.DAMAGED: ("damaged", "endommag", "casse", "degat"),
    ProblemTypology.MALFUNCTION: ("defective", "malfunction", "defectu", "ne fonctionne"),
    ProblemTypology.MISSING_PARTS: ("missing", "incomplet", "manqu"),
    ProblemTypology.TRACKING: ("tracking", "suivi"),
    ProblemTypology.DELIVERY: ("delivery", "livraison", "colis"),
    ProblemTypology.QUALITY: ("quality", "qualite", "conforme", "description"),
    ProblemTypology.WARRANTY: ("warranty", "garantie"),
    ProblemTypology.SIZE: ("size", "taille"),
    ProblemTypology.REFUND: ("refund", "rembours"),
}

_DOCUMENT_KEYWORDS = (
    "photo", "video", "facture", "preuve", "bon de livraison", "etiquette",
    "numero de suivi", "numero de serie", "capture", "suivi", "reference",
)

# Advice verbs: a bullet containing one of these is a tip, not a document.
_TIP_VERBS = (
    "verifier", "tester", "charger", "tenter", "patienter",
    "redemarrer", "reinitialiser", "comparer",
)

_NON_WORD = re.compile(r"[^\w\s]|_")
_SPACES = re.compile(r"\s+")


def normalize_key(text: str | None) -> str:
    """Lowercase, strip accents and punctuation, collapse whitespace."""
    if not text or not text.strip():
        return ""
    decomposed = unicodedata.normalize("NFD", text.strip().lower())
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    result = unicodedata.normalize("NFC", stripped)
    result = _NON_WORD.sub(" ", result)
    result = _SPACES.sub(" ", result).strip()
    if result.startswith("- "):
        result = result[2:].strip()
    return result


def resolve_typology(text: str | None) -> ProblemTypology:
    """Classify a problem description. Returns UNKNOWN when nothing matches."""
    key = normalize_key(text)
    if not key:
        return ProblemTypology.UNKNOWN
    for typology, keywords in _TYPOLOGY_KEYWORDS:
        if any(k in key for k in keywords):
            return typology
    return ProblemTypology.UNKNOWN


def _matches(result: PolicySearchResult, hints: Sequence[str]) -> bool:
    section_id = normalize_key(result.record.section_id)
    title = normalize_key(result.record.title)
    return any(
        normalize_key(h) in section_id or normalize_key(h) in title
        for h in hints
    )


def filter_by_typology(
    results: Sequence[PolicySearchResult],
    typology: ProblemTypology,
) -> list[PolicySearchResult]:
    """Reorder results: sections matching the typology first, then the rest.

    The input order is kept when the typology is UNKNOWN or when no
    section matches. For WRONG_ITEM without a direct match, every
    non-damage section counts as preferred.
    """
    results = list(results)
    if typology is ProblemTypology.UNKNOWN:
        return results

    preferred = [r for r in results if _matches(r, _SECTION_HINTS[typology])]
    if typology is ProblemTypology.WRONG_ITEM and not preferred:
        damage = _SECTION_HINTS[ProblemTypology.DAMAGED]
        preferred = [r for r in results if not _matches(r, damage)]

    if not preferred:
        return results

    preferred_ids = {r.record.id for r in preferred}
    return preferred + [r for r in results if r.record.id not in preferred_ids]


def is_document_like(line: str) -> bool:
    """True for bullets asking for a document or proof (photo, facture...)."""
    key = normalize_key(line)
    if any(normalize_key(k) in key for k in _DOCUMENT_KEYWORDS):
        return True
    return not any(v in key for v in _TIP_VERBS)


def format_requirements(results: Sequence[PolicySearchResult]) -> str:
    """Pick at most three de-duplicated "- " bullets from the ranked results.

    Bullets of the best-ranked section come first; within a rank,
    document-like bullets come before tips and shorter before longer.
    When the first section alone has three bullets, later sections are
    not consulted.
    """
    candidates: list[tuple[int, str, bool]] = []

    for rank, result in enumerate(results):
        content = result.record.content
        if not content or not content.strip():
            continue

        for raw_line in content.splitlines():
            line = raw_line.strip()
            if not line.startswith("- "):
                continue
            candidates.append((rank, line, is_document_like(line)))

        if rank == 0 and sum(1 for c in candidates if c[0] == 0) >= MAX_REQUIREMENTS:
            break

    if not candidates:
        return NO_REQUIREMENTS_FOUND

    ordered = sorted(candidates, key=lambda c: (c[0], not c[2], len(c[1])))

    seen: set[str] = set()
    selected: list[str] = []
    for _, text, _ in ordered:
        key = normalize_key(text)
        if key in seen:
            continue
        seen.add(key)
        selected.append(text if text.startswith("- ") else f"- {text}")
        if len(selected) >= MAX_REQUIREMENTS:
            break

    return "\n".join(selected).strip()
