"""
Admin dashboard schemas
"""
from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_donations: int = 0
    pending_items: int = 0
    listed_items: int = 0
    sold_items: int = 0
    items_without_price: int = 0
    total_revenue: float = 0


class EnhancedDashboardStats(DashboardStats):
    average_item_value: float = 0
    profit_margin: float = 0
    conversion_rate: float = 0
