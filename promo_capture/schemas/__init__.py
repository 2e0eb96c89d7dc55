from promo_capture.schemas.auth import (  # noqa: F401
    PromoterSummary,
    SendOtpRequest,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from promo_capture.schemas.order import (  # noqa: F401
    ApiMessage,
    CaptureForm,
    CaptureResponse,
    CapturedOrder,
    EntryType,
    OrderFlagRequest,
    OrderStatusItem,
    OrderStatusUpdateRequest,
    OrderUpdateRequest,
)
