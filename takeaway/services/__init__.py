"""
                        Services Module

Business logic for the menu, one service per entity, plus the cache
backends and the spreadsheet exporter.

Services:
    - category_service: Category CRUD
    - dish_service: Dish CRUD with flavors, cached dish lists
    - setmeal_service: Set meal CRUD with member dishes, cached lists
    - cache: In-memory (development) and Redis (production) cache backends
    - excel_manager: Lock-protected menu workbook export
"""

from takeaway.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
