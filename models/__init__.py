from .user import User
from .holding import Holding
from .transaction import Transaction
from .wishlist import WishlistItem
