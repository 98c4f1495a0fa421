from commerce.models.product import Product, ProductInventory
from commerce.models.cart import ShoppingCart, CartItem
from commerce.models.order import Order
from commerce.models.order_item import OrderItem
from commerce.models.payment import Payment
from commerce.models.webhook_event import WebhookEvent

# add ALL models here
