from marketplace.models.user import Profile
from marketplace.models.artwork import Artwork
from marketplace.models.cart import Cart, CartItem
from marketplace.models.order import Order
from marketplace.models.order_item import OrderItem
from marketplace.models.order_event import OrderCompletionStep
from marketplace.models.wallet import WalletTransaction
from marketplace.models.notifications import Notification

# add ALL models here
