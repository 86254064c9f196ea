# Import models so that SQLAlchemy metadata includes them on app startup
from .user import User  # noqa: F401
from .location import Location  # noqa: F401
from .menu_category import MenuCategory  # noqa: F401
from .menu_item import MenuItem  # noqa: F401
from .order import Order  # noqa: F401
from .order_item import OrderItem  # noqa: F401
from .payment import Payment  # noqa: F401
from .sale import Sale  # noqa: F401
from .tax_service_rate import TaxServiceRate  # noqa: F401
from .delivery_service import DeliveryService  # noqa: F401
from .restaurant_config import RestaurantConfig  # noqa: F401
