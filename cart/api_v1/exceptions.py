import structlog
from rest_framework.response import Response
from rest_framework.views import exception_handler

from ..exceptions import CartError

logger = structlog.get_logger(__name__)


def cart_exception_handler(exc, context):
    """Map cart core errors onto responses, defer everything else to DRF."""
    if not isinstance(exc, CartError):
        return exception_handler(exc, context)

    view = context.get('view')
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Cart operation rejected",
        view=view.__class__.__name__ if view else None,
        code=exc.default_code,
        reason=exc.message,
    )
    return Response(
        {'detail': exc.message, 'code': exc.default_code},
        status=exc.status_code
    )
