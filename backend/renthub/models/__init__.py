"""SQLAlchemy models for RentHub.

All models are imported here so that ``Base.metadata`` knows every table.
If you add a new model, import it in this file.
"""

from renthub.models.booking import Booking
from renthub.models.product import Product
from renthub.models.user import User

__all__ = [
    "Booking",
    "Product",
    "User",
]
