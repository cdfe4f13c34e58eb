from __future__ import annotations

import io
from typing import Mapping, Optional, Sequence

import pandas as pd

from .model import Package

EXCEL_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def packages_to_dataframe(packages: Sequence[Package], customer_names: Optional[Mapping[int, str]] = None) -> pd.DataFrame:
    names = customer_names or {}
    rows = [
        {
            "Tracking Number": p.tracking_number,
            "Customer": names.get(p.user_id, f"#{p.user_id}"),
            "Manifest": p.manifest_id,
            "Description": p.description or "",
            "Status": p.status.label,
            "Weight (lbs)": float(p.weight) if p.weight is not None else None,
            "Cubic Feet": float(p.cubic_feet) if p.cubic_feet is not None else None,
            "Freight": float(p.freight_price or 0),
            "Clearance": float(p.clearance_fee or 0),
            "Storage": float(p.storage_fee or 0),
            "Delivery": float(p.delivery_fee or 0),
            "Total": float(p.total_cost),
            "Consolidated": "Yes" if p.is_consolidated else "No",
        }
        for p in packages
    ]
    return pd.DataFrame(rows)


def packages_to_excel(packages: Sequence[Package], customer_names: Optional[Mapping[int, str]] = None) -> io.BytesIO:
    df = packages_to_dataframe(packages, customer_names)
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Packages")
    output.seek(0)
    return output
