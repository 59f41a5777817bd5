"""
Line-item generation from a free-text project description.

The AI path asks the chat model for a JSON object with items, a suggested
description and a quote title. Any failure there (no key, network, malformed
reply) is logged and answered with a keyword-based local proposal, so callers
always get a usable result.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Sequence, Tuple

from openai import OpenAIError

from quoteforge.core.pricing import apply_margin
from quoteforge.data.models import CreationMethod, LineItem
from quoteforge.services.context import ServiceContext

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Devis travaux"
BUILDING = "bâtiment"
TATTOO = "tatouage"

_TATTOO_KEYWORDS = (
    "tatouage", "tattoo", "encre", "aiguille", "stencil", "séance",
    "peau", "crâne", "bras", "jambe", "dos", "poitrine",
)

_PROMPT_ROLE = {
    TATTOO: (
        "Tu es un tatoueur expérimenté qui prépare des devis détaillés pour des projets de tatouage.",
        "séance, heure, forfait",
        "la nature du projet de tatouage",
        '{"description": "Consultation et dessin préparatoire", "quantity": 1, "unit": "forfait", "unitPrice": 80, "totalHT": 80}',
    ),
    BUILDING: (
        "Tu es un expert du bâtiment qui prépare des devis de travaux détaillés.",
        "m², ml, unité, forfait, heure",
        "la nature des travaux, avec la terminologie du BTP",
        '{"description": "Étude préliminaire", "quantity": 1, "unit": "forfait", "unitPrice": 500, "totalHT": 500}',
    ),
}


@dataclass(frozen=True)
class GenerationInput:
    project_description: str
    client_name: Optional[str] = None
    tva_rate: Optional[float] = None
    min_margin: Optional[float] = None
    creation_method: Optional[CreationMethod] = None
    # "particulier" or "professionnel"
    client_type: Optional[str] = None
    project_name: Optional[str] = None


@dataclass(frozen=True)
class GenerationResult:
    items: Tuple[LineItem, ...]
    suggested_description: str
    quote_title: str
    # "ai" or "fallback"
    source: str = "ai"


def detect_domain(description: str) -> str:
    text = (description or "").lower()
    return TATTOO if any(k in text for k in _TATTOO_KEYWORDS) else BUILDING


def build_system_prompt(domain: str, tva_rate: Optional[float] = None) -> str:
    role, units, title_hint, example = _PROMPT_ROLE.get(domain, _PROMPT_ROLE[BUILDING])
    tva = f"Utilise un taux de TVA de {tva_rate:g}%." if tva_rate else "Utilise le taux de TVA standard de 20%."
    return "\n".join(
        [
            role,
            "À partir de la description du projet, propose la liste des lignes du devis.",
            f"Pour chaque ligne : une description claire, une quantité réaliste, une unité ({units}, etc.),",
            "un prix unitaire HT en euros et le total HT (quantité x prix unitaire).",
            tva,
            "Donne des prix de revient réalistes ; les marges sont appliquées ensuite par l'application.",
            f"Propose aussi un titre court (60 caractères maximum) qui résume {title_hint}.",
            "Si la description est trop succincte, propose une description plus complète.",
            "Réponds uniquement avec un objet JSON de la forme :",
            '{"items": [' + example + '], "suggestedDescription": "...", "quoteTitle": "..."}',
        ]
    )


def build_user_message(inp: GenerationInput, domain: str) -> str:
    method = inp.creation_method.value if inp.creation_method else "standard"
    return (
        f"Description du projet: {inp.project_description}\n"
        f"Méthode de création: {method}\n"
        f"Type de client: {inp.client_type or 'standard'}\n"
        f"Domaine d'activité détecté: {domain}"
    )


def parse_items(raw: Any, id_prefix: str = "gen") -> List[LineItem]:
    """Line items from the model's "items" array; entries without a description are dropped."""
    if not isinstance(raw, list):
        return []
    out: List[LineItem] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        item = LineItem.from_dict(entry)
        if not item.description.strip():
            continue
        out.append(replace(item, id=f"{id_prefix}-{len(out) + 1}").with_line_total())
    return out


def price_with_margin(items: Sequence[LineItem], margin: Optional[float]) -> List[LineItem]:
    """Treat unit prices as cost prices and apply the target margin; no margin leaves items as-is."""
    if not margin:
        return list(items)
    return [
        replace(it, cost_price=it.unit_price, unit_price=float(apply_margin(it.unit_price, margin))).with_line_total()
        for it in items
    ]


# ===== Local proposal =====
_GARAGE_ITEMS = (
    ("Étude de sol et implantation", 1, "forfait", 750),
    ("Fondations en béton armé", 45, "m²", 120),
    ("Structure en parpaing", 85, "m²", 95),
    ("Charpente métallique", 1, "forfait", 3200),
    ("Couverture en tuiles", 50, "m²", 85),
)
_BATHROOM_ITEMS = (
    ("Démolition et préparation", 1, "forfait", 850),
    ("Plomberie et évacuations", 1, "forfait", 1200),
    ("Carrelage mural", 22, "m²", 75),
    ("Douche à l'italienne", 1, "unité", 2400),
)
_GENERIC_ITEMS = (
    ("Étude préliminaire", 1, "forfait", 500),
    ("Main d'oeuvre", 35, "heure", 45),
    ("Fournitures et matériaux", 1, "forfait", 2500),
)

_GARAGE_DESCRIPTION = (
    "Construction d'un garage attenant à l'habitation principale. Structure en parpaing "
    "avec couverture en tuiles, porte sectionnelle motorisée et raccordement électrique. "
    "Surface au sol d'environ 25 m²."
)
_BATHROOM_DESCRIPTION = (
    "Rénovation complète d'une salle de bain : dépose des anciens équipements, douche à "
    "l'italienne, carrelage mural et au sol, meuble vasque, WC suspendu et mise aux normes "
    "électriques."
)

# Checked in order; first match wins
_TITLES = (
    (("garage",), "Construction garage attenant avec motorisation"),
    (("salle de bain",), "Rénovation complète salle de bain"),
    (("toiture", "toit"), "Réfection toiture et étanchéité"),
    (("isolation",), "Travaux isolation thermique"),
)

SHORT_DESCRIPTION = 50


def fallback_items(description: str) -> List[LineItem]:
    text = (description or "").lower()
    if "garage" in text or "construction" in text:
        rows = _GARAGE_ITEMS
    elif "salle de bain" in text or "sanitaire" in text:
        rows = _BATHROOM_ITEMS
    else:
        rows = _GENERIC_ITEMS
    return [
        LineItem(description=d, quantity=float(q), unit=u, unit_price=float(p), id=f"fallback-{n}").with_line_total()
        for n, (d, q, u, p) in enumerate(rows, start=1)
    ]


def suggest_description(description: str) -> str:
    """A fuller description for short garage or bathroom requests; otherwise the input unchanged."""
    if len(description) >= SHORT_DESCRIPTION:
        return description
    text = description.lower()
    if "garage" in text:
        return _GARAGE_DESCRIPTION
    if "salle de bain" in text:
        return _BATHROOM_DESCRIPTION
    return description


def suggest_title(description: str, project_name: Optional[str] = None) -> str:
    text = (description or "").lower()
    for keywords, title in _TITLES:
        if any(k in text for k in keywords):
            return title
    return project_name or DEFAULT_TITLE


def fallback_result(inp: GenerationInput) -> GenerationResult:
    items = price_with_margin(fallback_items(inp.project_description), inp.min_margin)
    return GenerationResult(
        items=tuple(items),
        suggested_description=suggest_description(inp.project_description or ""),
        quote_title=suggest_title(inp.project_description, inp.project_name),
        source="fallback",
    )


class LineItemGenerator:
    def __init__(self, context: ServiceContext) -> None:
        self.context = context

    def generate(self, inp: GenerationInput) -> GenerationResult:
        domain = detect_domain(inp.project_description)
        try:
            data = self.context.complete_json(
                build_system_prompt(domain, inp.tva_rate),
                build_user_message(inp, domain),
            )
        except (OpenAIError, RuntimeError, ValueError) as exc:
            logger.warning("AI item generation failed, using local proposal: %s", exc)
            return fallback_result(inp)

        items = parse_items(data.get("items"))
        if not items:
            logger.warning("AI reply contained no usable items, using local proposal")
            return fallback_result(inp)

        logger.info("Generated %d item(s) for a %s project", len(items), domain)
        return GenerationResult(
            items=tuple(price_with_margin(items, inp.min_margin)),
            suggested_description=str(data.get("suggestedDescription") or ""),
            quote_title=str(data.get("quoteTitle") or inp.project_name or DEFAULT_TITLE),
            source="ai",
        )
