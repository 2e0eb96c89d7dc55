from promo_capture.models.campaign import (  # noqa: F401
    BrandModel,
    ProjectModel,
    ProjectPromoterModel,
    PromoterModel,
)
from promo_capture.models.order import ORDER_STATUSES, CapturedOrderModel  # noqa: F401
