"""
                Takeaway Admin

Menu administration backend for a restaurant/takeaway shop:
categories, dishes with flavors and set meals, stored in a relational
database with list queries cached in Redis.
"""

__version__ = "1.0.0"
