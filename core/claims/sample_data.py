# Nombre de archivo: sample_data.py
# Ubicación de archivo: core/claims/sample_data.py
# Descripción: Dataset de ejemplo con el que se siembra el espejo local de reclamos

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from .models import Claim, ClaimDocument, ClaimProduct, ClaimStatus


def _day(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def _product(pid: str, description: str, style: str, color: str, quantity: int, price: float, claimed: int) -> ClaimProduct:
    return ClaimProduct.create(
        description=description,
        style=style,
        color=color,
        quantity=quantity,
        price_per_unit=price,
        claimed_quantity=claimed,
        id=pid,
    )


def _document(did: str, name: str, kind: str, url: str, uploaded: str, category: str) -> ClaimDocument:
    return ClaimDocument(id=did, name=name, kind=kind, url=url, upload_date=_day(uploaded), category=category)


def _claim(
    cid: str,
    number: str,
    client: str,
    client_id: str,
    created: str,
    status: ClaimStatus,
    department: str,
    cause: str,
    installed: bool,
    invoice: str,
    solution: float,
    claimed: float,
    description: str,
    updated: str,
    products: List[ClaimProduct],
    documents: List[ClaimDocument],
) -> Claim:
    return Claim(
        id=cid,
        claim_number=number,
        client_name=client,
        client_id=client_id,
        creation_date=_day(created),
        status=status,
        department=department,
        identified_cause=cause,
        installed=installed,
        invoice_link=invoice,
        solution_amount=solution,
        claimed_amount=claimed,
        saved_amount=claimed - solution,
        description=description,
        last_updated=_day(updated),
        products=products,
        documents=documents,
    )


def sample_claims() -> List[Claim]:
    """Devuelve una copia nueva de los seis reclamos de ejemplo."""
    return [
        _claim(
            "1", "CLM-2023-0135", "Acme Corporation", "ACME001", "2023-06-15", ClaimStatus.NEW,
            "Technical", "Manufacturing Defect", True, "INV-88754", 0, 12500,
            "Carpet tiles showing premature wear after only 3 months of installation.", "2023-06-15",
            [
                _product("p1", "Venture Modular Carpet - Linear Pattern", "VM-Linear", "Charcoal Grey", 200, 45, 200),
                _product("p2", "Installation Labor", "Service", "N/A", 1, 3500, 1),
            ],
            [
                _document("d1", "Site photo 1.jpg", "image",
                          "https://images.pexels.com/photos/276534/pexels-photo-276534.jpeg",
                          "2023-06-15", "Site Condition"),
                _document("d2", "Invoice.pdf", "document", "/documents/invoice-88754.pdf", "2023-06-15", "Financial"),
            ],
        ),
        _claim(
            "2", "CLM-2023-0142", "Global Offices Inc.", "GLOB002", "2023-07-22", ClaimStatus.SCREENING,
            "Customer Service", "Color Variation", False, "INV-90122", 0, 8750,
            "Customer reports significant color variation between ordered samples and delivered product.",
            "2023-07-25",
            [_product("p3", "Venture Modular Carpet - Geometric", "VM-Geo", "Ocean Blue", 250, 35, 250)],
            [_document("d3", "Color comparison.jpg", "image", "/documents/color-comparison.jpg", "2023-07-22", "Product Condition")],
        ),
        _claim(
            "3", "CLM-2023-0118", "Hospitality Group", "HOSP003", "2023-05-03", ClaimStatus.ANALYZING,
            "Technical", "Installation Issue", True, "INV-87453", 4200, 15800,
            "Carpet backing separation in high traffic areas of hotel lobby.", "2023-06-02",
            [
                _product("p4", "Venture Modular Carpet - Textured Pattern", "VM-Texture", "Burgundy", 320, 42, 80),
                _product("p5", "Reinstallation Labor", "Service", "N/A", 1, 2360, 1),
            ],
            [
                _document("d4", "Backing issue.jpg", "image",
                          "https://images.pexels.com/photos/6969936/pexels-photo-6969936.jpeg",
                          "2023-05-03", "Product Condition"),
                _document("d5", "Technical report.pdf", "document", "/documents/tech-report-103.pdf", "2023-05-10", "Analysis"),
            ],
        ),
        _claim(
            "4", "CLM-2023-0156", "City Municipal Buildings", "CITY004", "2023-08-30", ClaimStatus.NEGOTIATION,
            "Customer Service", "Shipping Damage", False, "INV-91235", 3200, 6400,
            "Multiple tiles damaged during shipping. Customer requesting full replacement.", "2023-09-15",
            [_product("p6", "Venture Modular Carpet - Solid", "VM-Solid", "Slate", 160, 40, 160)],
            [
                _document("d6", "Damaged boxes.jpg", "image", "/documents/damaged-boxes.jpg", "2023-08-30", "Shipping"),
                _document("d7", "Delivery note.pdf", "document", "/documents/delivery-note-91235.pdf", "2023-08-31", "Shipping"),
            ],
        ),
        _claim(
            "5", "CLM-2023-0126", "Tech Innovations Ltd", "TECH005", "2023-05-18", ClaimStatus.ACCEPTED,
            "Production", "Manufacturing Defect", True, "INV-88221", 18750, 22500,
            "Pattern misalignment noted across 50% of installed tiles in office space.", "2023-07-08",
            [_product("p7", "Venture Modular Carpet - Designer Series", "VM-Designer", "Multi", 450, 50, 450)],
            [
                _document("d8", "Misalignment.jpg", "image", "/documents/misalignment.jpg", "2023-05-18", "Product Condition"),
                _document("d9", "Settlement.pdf", "document", "/documents/settlement-88221.pdf", "2023-07-08", "Financial"),
            ],
        ),
        _claim(
            "6", "CLM-2023-0112", "Northern Banking Corp", "BANK006", "2023-04-05", ClaimStatus.CLOSED,
            "Technical", "Material Failure", True, "INV-86554", 8900, 14500,
            "Premature wear and fiber loss in executive boardroom after only 6 months of use.", "2023-05-20",
            [_product("p8", "Venture Modular Carpet - Premium Weave", "VM-Premium", "Navy", 180, 80, 180)],
            [
                _document("d10", "Boardroom wear.jpg", "image", "/documents/boardroom-wear.jpg", "2023-04-05", "Site Condition"),
                _document("d11", "Lab analysis.pdf", "document", "/documents/lab-analysis-112.pdf", "2023-04-20", "Analysis"),
                _document("d12", "Closing letter.pdf", "document", "/documents/closing-112.pdf", "2023-05-20", "Financial"),
            ],
        ),
    ]


__all__ = ["sample_claims"]
