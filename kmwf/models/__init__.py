from kmwf.models.donation import DonationModel, ReceiptCounterModel
from kmwf.models.gullak import GullakCollectionModel, GullakModel
from kmwf.models.scrap_item import ScrapItemModel
from kmwf.models.user import InAppNotificationModel, UserModel

__all__ = [
    "DonationModel",
    "ReceiptCounterModel",
    "GullakModel",
    "GullakCollectionModel",
    "ScrapItemModel",
    "UserModel",
    "InAppNotificationModel",
]
