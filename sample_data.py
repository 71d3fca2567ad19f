from __future__ import annotations

from typing import Any, Dict, List

SAMPLE_QUOTATIONS: List[Dict[str, Any]] = [
    {"id": "QT-2023-1001", "customer_name": "ABC Corporation", "date": "2023-10-15",
     "valid_until": "2023-11-15", "total": 12500.00, "status": "Sent"},
    {"id": "QT-2023-1002", "customer_name": "XYZ Enterprises", "date": "2023-10-20",
     "valid_until": "2023-11-20", "total": 8750.50, "status": "Accepted"},
    {"id": "QT-2023-1003", "customer_name": "Global Solutions Ltd", "date": "2023-10-25",
     "valid_until": "2023-11-25", "total": 15000.00, "status": "Expired"},
    {"id": "QT-2023-1004", "customer_name": "Tech Innovators Inc", "date": "2023-11-01",
     "valid_until": "2023-12-01", "total": 5250.75, "status": "Draft"},
    {"id": "QT-2023-1005", "customer_name": "Sunrise Retailers", "date": "2023-11-05",
     "valid_until": "2023-12-05", "total": 9800.25, "status": "Rejected"},
]

STATUS_CLASSES = {
    "accepted": "badge-green",
    "sent": "badge-blue",
    "expired": "badge-red",
    "draft": "badge-gray",
    "rejected": "badge-orange",
}


def filter_quotations(quotations: List[Dict[str, Any]], term: str) -> List[Dict[str, Any]]:
    """Case-insensitive match on quotation id or customer name."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(quotations)
    return [
        q for q in quotations
        if needle in str(q.get("id", "")).lower() or needle in str(q.get("customer_name", "")).lower()
    ]


def status_class(status: str) -> str:
    return STATUS_CLASSES.get((status or "").lower(), "badge-purple")
