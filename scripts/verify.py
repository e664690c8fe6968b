"""
Menu Export Verification Script

Verifies data integrity of the exported menu workbook.
Run from project root: python scripts/verify.py
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from takeaway.services.excel_manager import ExcelManager

EXCEL_FILE = str(ExcelManager.menu_file())


def verify_excel():
    """Verify the menu workbook after an export."""

    print("=" * 60)
    print("MENU EXPORT VERIFICATION REPORT")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"File: {EXCEL_FILE}")
    print("=" * 60)

    if not os.path.exists(EXCEL_FILE):
        print("\nExcel file not found!")
        print("   Trigger an export first: POST /dish/export")
        return False

    try:
        df = pd.read_excel(EXCEL_FILE, engine='openpyxl')
        print("\nFile loaded successfully!")
    except Exception as e:
        print(f"\nCould not read Excel file: {e}")
        return False

    print("\nSTATISTICS:")
    print(f"   Total Dishes: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    missing = [col for col in ExcelManager.MENU_COLUMNS if col not in df.columns]
    if missing:
        print(f"\nMissing Columns: {missing}")
    else:
        print("\nAll required columns present")

    if 'dish_id' in df.columns:
        duplicates = df['dish_id'].duplicated().sum()
        if duplicates > 0:
            print(f"\n{duplicates} duplicate dish IDs found!")
        else:
            print("No duplicate dish IDs")

    if 'status' in df.columns:
        stopped = (df['status'] != 1).sum()
        if stopped > 0:
            print(f"\n{stopped} exported dishes are not on sale!")

    if 'price' in df.columns and len(df) > 0:
        print("\nPRICES:")
        print(f"   Min: {df['price'].min():.2f}")
        print(f"   Max: {df['price'].max():.2f}")
        print(f"   Average: {df['price'].mean():.2f}")

    if 'category' in df.columns and len(df) > 0:
        print("\nDISHES PER CATEGORY:")
        print(df.groupby('category')['dish_id'].count().to_string())

    print("\n" + "=" * 60)
    print("VERIFICATION COMPLETE")
    print("=" * 60)

    return not missing


if __name__ == "__main__":
    sys.exit(0 if verify_excel() else 1)
