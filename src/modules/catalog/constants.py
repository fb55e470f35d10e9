from django.db import models


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


DEFAULT_LOW_STOCK_THRESHOLD = 10
