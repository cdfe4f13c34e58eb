from __future__ import annotations

from decimal import Decimal

import pandas as pd

from src.freight_system.freight_system.core.enums import PackageStatus
from src.freight_system.freight_system.packages.export import packages_to_dataframe, packages_to_excel
from tests.fakes import package


def _packages():
    return [
        package(
            1,
            status=PackageStatus.READY,
            description="Shoes",
            weight=Decimal("3.5"),
            freight_price=Decimal("20"),
            storage_fee=Decimal("2.5"),
        ),
        package(2, user_id=11, is_consolidated=True, consolidated_package_id=4),
    ]


def test_dataframe_has_one_row_per_package():
    df = packages_to_dataframe(_packages(), {10: "Ann Lee"})

    assert list(df["Tracking Number"]) == ["TRK0001", "TRK0002"]
    assert list(df["Customer"]) == ["Ann Lee", "#11"]
    assert df.loc[0, "Status"] == "Ready for Pickup"
    assert df.loc[0, "Total"] == 22.5
    assert list(df["Consolidated"]) == ["No", "Yes"]


def test_excel_workbook_reads_back():
    output = packages_to_excel(_packages(), {10: "Ann Lee"})

    sheet = pd.read_excel(output, sheet_name="Packages", engine="openpyxl")

    assert len(sheet) == 2
    assert sheet.loc[0, "Description"] == "Shoes"
    assert sheet.loc[0, "Weight (lbs)"] == 3.5
    assert sheet.loc[1, "Freight"] == 0
