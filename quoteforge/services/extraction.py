"""
Import of line items from tender documents (CCTP / DPGF).

Reading text out of binary PDFs is not done here: the importer works on the
document text given by the caller, or on a representative sample of the
detected document type. The text goes to the chat model when one is
configured; otherwise, or when that fails, local parsers read the "Projet:",
"Client:" and "Adresse:" fields plus either the priced DPGF lines or the CCTP
lots.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from openai import OpenAIError

from quoteforge.core.currency import parse_money, to_decimal
from quoteforge.data.models import LineItem
from quoteforge.services.context import ServiceContext

logger = logging.getLogger(__name__)


class DocumentType(str, Enum):
    AUTO = "auto"
    CCTP = "cctp"
    DPGF = "dpgf"


@dataclass(frozen=True)
class ExtractionOptions:
    type: DocumentType = DocumentType.AUTO
    include_descriptions: bool = True
    detect_prices: bool = True
    use_ai: bool = True


@dataclass(frozen=True)
class ClientInfo:
    name: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    siret: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ClientInfo"]:
        if not isinstance(data, dict):
            return None
        info = cls(**{k: (str(data[k]).strip() or None) if data.get(k) else None for k in ("name", "address", "email", "phone", "siret")})
        return info if any(vars(info).values()) else None


@dataclass(frozen=True)
class ExtractionResult:
    success: bool
    message: str
    items: Tuple[LineItem, ...] = field(default_factory=tuple)
    title: Optional[str] = None
    client_info: Optional[ClientInfo] = None
    document_type: Optional[DocumentType] = None


SAMPLE_CCTP = """CAHIER DES CLAUSES TECHNIQUES PARTICULIÈRES

Projet: Rénovation énergétique d'un bâtiment tertiaire

Lot 1: Isolation thermique par l'extérieur
- Préparation des supports
- Fourniture et pose d'isolant 120mm
- Pose d'enduit de finition
- Traitement des points singuliers

Lot 2: Menuiseries extérieures
- Dépose des menuiseries existantes
- Fourniture et pose de menuiseries aluminium
- Fourniture et pose de vitrages isolants
- Étanchéité périphérique

Lot 3: Ventilation
- Installation d'une VMC double flux
- Fourniture et pose de gaines
- Raccordements électriques
"""

SAMPLE_DPGF = """DÉCOMPOSITION DU PRIX GLOBAL ET FORFAITAIRE

Projet: Construction maison individuelle
Client: Dupont Construction
Adresse: 25 rue des Artisans, 75011 Paris

Lot 1 - Préparation et installation: 1 forfait x 1500€ = 1500€
Lot 2 - Gros œuvre: 1 forfait x 12500€ = 12500€
Lot 3 - Menuiseries extérieures: 8 unités x 850€ = 6800€
Lot 4 - Plomberie: 1 forfait x 4200€ = 4200€
Lot 5 - Électricité: 1 forfait x 3800€ = 3800€

Total HT: 28800€
TVA 20%: 5760€
Total TTC: 34560€
"""

_CCTP_HINTS = ("cctp", "technique", "clauses")
_DPGF_HINTS = ("dpgf", "prix", "decomposition", "décomposition")

# "Lot 3 - Menuiseries extérieures: 8 unités x 850€ = 6800€"
_DPGF_LINE = re.compile(
    r"^(?P<desc>[^:\n]+?)\s*:\s*(?P<qty>\d+(?:[.,]\d+)?)\s*(?P<unit>[^\d\s][^x×\n]*?)\s*[x×]\s*"
    r"(?P<price>\d[\d\s.,]*?)\s*€?(?:\s*=\s*(?P<total>\d[\d\s.,]*?)\s*€?)?\s*$",
    re.MULTILINE,
)
_LOT_HEADING = re.compile(r"^(?P<label>Lot\s+\d+)\s*[:\-–]\s*(?P<title>.+?)\s*$", re.IGNORECASE)
_BULLET = re.compile(r"^\s*[-•*]\s*(?P<text>.+?)\s*$")
_EMAIL = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
_PHONE = re.compile(r"(?:\+33\s?|0)[1-9](?:[\s.-]?\d{2}){4}")
_SIRET = re.compile(r"\b\d{3}\s?\d{3}\s?\d{3}\s?\d{5}\b")

SYSTEM_PROMPT = "\n".join(
    [
        "Tu analyses des documents d'appel d'offres du bâtiment (CCTP ou DPGF).",
        "À partir du texte fourni, identifie le titre du projet, les informations du client",
        "(nom, adresse, email, téléphone, SIRET) et les lignes de devis avec description,",
        "quantité, unité, prix unitaire HT et total HT quand ils sont disponibles.",
        "Réponds uniquement avec un objet JSON de la forme :",
        '{"items": [{"description": "Préparation du chantier", "quantity": 1, "unit": "forfait", '
        '"unitPrice": 500, "totalHT": 500}], "title": "...", '
        '"clientInfo": {"name": "...", "address": "...", "email": "...", "phone": "...", "siret": "..."}}',
    ]
)


def detect_document_type(name: str) -> DocumentType:
    """CCTP or DPGF from hints in a file name; DPGF when nothing matches."""
    lower = (name or "").lower()
    if any(h in lower for h in _CCTP_HINTS):
        return DocumentType.CCTP
    if any(h in lower for h in _DPGF_HINTS):
        return DocumentType.DPGF
    return DocumentType.DPGF


def sample_text(doc_type: DocumentType) -> str:
    return SAMPLE_CCTP if doc_type == DocumentType.CCTP else SAMPLE_DPGF


def _field(text: str, label: str) -> Optional[str]:
    m = re.search(rf"^\s*{label}\s*:\s*(.+?)\s*$", text, re.IGNORECASE | re.MULTILINE)
    return m.group(1) if m else None


def parse_title(text: str) -> Optional[str]:
    return _field(text, "Projet")


def parse_client_info(text: str) -> Optional[ClientInfo]:
    email = _EMAIL.search(text)
    phone = _PHONE.search(text)
    siret = _SIRET.search(text)
    info = ClientInfo(
        name=_field(text, "Client"),
        address=_field(text, "Adresse"),
        email=email.group(0) if email else None,
        phone=phone.group(0) if phone else None,
        siret=siret.group(0).replace(" ", "") if siret else None,
    )
    return info if any(vars(info).values()) else None


def parse_dpgf_items(text: str, detect_prices: bool = True) -> List[LineItem]:
    """Priced lines "<label>: <qty> <unit> x <price>€ = <total>€"; totals are recomputed."""
    items: List[LineItem] = []
    for m in _DPGF_LINE.finditer(text):
        price = float(parse_money(m.group("price"))) if detect_prices else 0.0
        item = LineItem(
            description=m.group("desc").strip(),
            quantity=float(to_decimal(m.group("qty").replace(",", "."))),
            unit=m.group("unit").strip(),
            unit_price=price,
            id=f"import-{len(items) + 1}",
        ).with_line_total()
        stated = m.group("total")
        if detect_prices and stated and float(parse_money(stated)) != item.total_ht:
            logger.warning("Stated total %s differs from computed %.2f for %r", stated, item.total_ht, item.description)
        items.append(item)
    return items


def parse_cctp_items(text: str, include_descriptions: bool = True) -> List[LineItem]:
    """One lump-sum item per lot; the lot's bullet points become extra description lines."""
    lots: List[Tuple[str, List[str]]] = []
    for line in text.splitlines():
        heading = _LOT_HEADING.match(line.strip())
        if heading:
            lots.append((f"{heading.group('label')} - {heading.group('title')}", []))
            continue
        bullet = _BULLET.match(line)
        if bullet and lots:
            lots[-1][1].append(bullet.group("text"))

    items: List[LineItem] = []
    for n, (title, bullets) in enumerate(lots, start=1):
        description = title
        if include_descriptions and bullets:
            description = "\n".join([title] + [f"- {b}" for b in bullets])
        items.append(LineItem(description=description, quantity=1.0, unit="forfait", id=f"import-{n}"))
    return items


class DocumentImporter:
    def __init__(self, context: ServiceContext) -> None:
        self.context = context

    def extract(
        self,
        path: Path | str,
        options: Optional[ExtractionOptions] = None,
        text: Optional[str] = None,
    ) -> ExtractionResult:
        """Items, title and client details from a tender document.

        Never raises for content problems: a non-PDF path gives success=False and
        AI failures fall back to the local parsers.
        """
        options = options or ExtractionOptions()
        p = Path(path)
        if p.suffix.lower() != ".pdf":
            return ExtractionResult(success=False, message="Le fichier doit être au format PDF")

        doc_type = options.type if options.type != DocumentType.AUTO else detect_document_type(p.name)
        if text is None:
            text = sample_text(doc_type)

        if options.use_ai and self.context.ai_enabled:
            try:
                result = self._extract_with_ai(text, doc_type, options)
            except (OpenAIError, RuntimeError, ValueError) as exc:
                logger.warning("AI document analysis failed for %s, using local parser: %s", p.name, exc)
            else:
                logger.info("Imported %d item(s) from %s with AI", len(result.items), p.name)
                return result

        result = self.extract_locally(text, doc_type, options)
        logger.info("Imported %d item(s) from %s (%s)", len(result.items), p.name, doc_type.value)
        return result

    def _extract_with_ai(self, text: str, doc_type: DocumentType, options: ExtractionOptions) -> ExtractionResult:
        data: Dict[str, Any] = self.context.complete_json(SYSTEM_PROMPT, text, temperature=0.3, max_tokens=1500)
        raw = data.get("items")
        if not isinstance(raw, list):
            raise ValueError("AI response has no items list")
        items: List[LineItem] = []
        for entry in raw:
            if not isinstance(entry, dict):
                continue
            item = replace(LineItem.from_dict(entry), id=f"import-{len(items) + 1}")
            if not options.detect_prices:
                item = replace(item, unit_price=0.0)
            items.append(item.with_line_total())
        return ExtractionResult(
            success=True,
            message="Extraction réussie avec IA",
            items=tuple(items),
            title=str(data["title"]).strip() if data.get("title") else None,
            client_info=ClientInfo.from_dict(data.get("clientInfo")),
            document_type=doc_type,
        )

    @staticmethod
    def extract_locally(text: str, doc_type: DocumentType, options: Optional[ExtractionOptions] = None) -> ExtractionResult:
        options = options or ExtractionOptions()
        if doc_type == DocumentType.CCTP:
            items = parse_cctp_items(text, options.include_descriptions)
            message = "Extraction réussie du CCTP"
        else:
            items = parse_dpgf_items(text, options.detect_prices)
            message = "Extraction réussie du DPGF"
        if not items:
            message = "Aucune ligne de devis trouvée dans le document"
        return ExtractionResult(
            success=bool(items),
            message=message,
            items=tuple(items),
            title=parse_title(text),
            client_info=parse_client_info(text),
            document_type=doc_type,
        )
