# Import models so that SQLAlchemy metadata includes them on app startup
from .user import Buyer, Seller  # noqa: F401
from .order import Order  # noqa: F401
from .review import Review  # noqa: F401
