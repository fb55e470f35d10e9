from django.db import models


class NotificationType(models.TextChoices):
    ORDER_STATUS = "order_status", "Order status"
    OFFER_UPDATE = "offer_update", "Offer update"
    ADMIN_MESSAGE = "admin_message", "Admin message"
    LOW_STOCK = "low_stock", "Low stock"
    NEW_ORDER_REQUEST = "new_order_request", "New order request"
    NEW_OFFER_REQUEST = "new_offer_request", "New offer request"
    SYSTEM = "system", "System"


class RelatedEntity(models.TextChoices):
    ORDER = "Order", "Order"
    OFFER = "Offer", "Offer"
    PRODUCT_VARIATION = "ProductVariation", "Product variation"
