from .teams import Team, User
from .activities import Activity, ActivitySubmission
from .inventory import Product, InventoryLine
from .sales import ProductSale, Donation
from .ledger import PointAward, ManualPointsAward

__all__ = [
    'Team', 'User',
    'Activity', 'ActivitySubmission',
    'Product', 'InventoryLine',
    'ProductSale', 'Donation',
    'PointAward', 'ManualPointsAward',
]
