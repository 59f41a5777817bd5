from __future__ import annotations

import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path when running this script directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from quoteforge.data.models import LineItem, Quote
from quoteforge.pdf.quote_pdf import download_document, plan_document

# Generates a sample multi-page quote PDF for README/demo purposes.

_ROWS = [
    ("Étude préliminaire et relevés sur site", 1, "forfait", 500.0),
    ("Fourniture et pose de parquet chêne massif, ponçage et vitrification trois couches", 25, "m²", 85.0),
    ("Douche à l'italienne avec receveur extra-plat", 1, "u", 2400.0),
    ("Carrelage mural grès cérame 30x60", 22, "m²", 75.0),
    ("Main d'oeuvre", 35, "heure", 45.0),
]


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    out_dir = ROOT / "assets" / "samples"

    items = [
        LineItem(description=f"{desc} (tranche {n // len(_ROWS) + 1})", quantity=q, unit=u, unit_price=p).with_line_total()
        for n, (desc, q, u, p) in enumerate(_ROWS * 8)
    ]
    quote = Quote(
        id="001",
        client_name="Dupont Construction",
        client_address="25 rue des Artisans, 75011 Paris",
        client_email="contact@dupont-construction.fr",
        client_phone="01 23 45 67 89",
        quote_title="Rénovation complète appartement T3",
        date="18/05/2025",
        items=tuple(items),
    )

    out_pdf = download_document(quote, filename="sample-quote.pdf", directory=out_dir)
    print(f"Wrote {plan_document(quote).page_count} page(s) to: {out_pdf}")


if __name__ == "__main__":
    main()
