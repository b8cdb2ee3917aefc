"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Base class and helpers for the JSON API views that expose
             the budget core to dashboards and reports.
-------------------------------------------------------------------------
"""
import json
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.utils.dateparse import parse_date
from django.views import View

from apps.core.exceptions import CBMSException, UnauthorizedRoleException

logger = logging.getLogger(__name__)


def api_response(data: Any, status: int = 200, message: str = '') -> JsonResponse:
    """Wrap a payload in the standard success envelope."""
    body: Dict[str, Any] = {'success': True, 'data': data}
    if message:
        body['message'] = message
    return JsonResponse(body, status=status, encoder=DjangoJSONEncoder)


def api_error(message: str, status: int = 400, error_code: str = '', details: Optional[dict] = None) -> JsonResponse:
    """Build the standard error envelope."""
    body: Dict[str, Any] = {'success': False, 'message': message}
    if error_code:
        body['error_code'] = error_code
    if details:
        body['details'] = details
    return JsonResponse(body, status=status, encoder=DjangoJSONEncoder)


def parse_decimal(value: Any, field: str) -> Decimal:
    """Parse a monetary value from request data."""
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError({field: f"'{value}' is not a valid amount."})


def parse_iso_date(value: Any, field: str) -> date:
    """Parse an ISO date from request data."""
    parsed = parse_date(str(value)) if value else None
    if parsed is None:
        raise ValidationError({field: f"'{value}' is not a valid date (YYYY-MM-DD)."})
    return parsed


class JsonApiView(LoginRequiredMixin, View):
    """
    Base view for JSON endpoints.

    Maps domain exceptions to HTTP responses:
        UnauthorizedRoleException -> 403
        other CBMSException       -> 400 with error_code
        ObjectDoesNotExist        -> 404
        ValidationError           -> 400
    """

    raise_exception = True

    def dispatch(self, request: HttpRequest, *args, **kwargs) -> HttpResponse:
        try:
            return super().dispatch(request, *args, **kwargs)
        except UnauthorizedRoleException as e:
            logger.warning(f"Unauthorized API call to {request.path}: {e.message}")
            return api_error(e.message, status=403, error_code=e.error_code, details=e.details)
        except CBMSException as e:
            return api_error(e.message, status=400, error_code=e.error_code, details=e.details)
        except ObjectDoesNotExist as e:
            return api_error(str(e) or 'Record not found.', status=404)
        except ValidationError as e:
            details = e.message_dict if hasattr(e, 'error_dict') else {'errors': e.messages}
            return api_error('Validation failed.', status=400, details=details)

    def get_body(self) -> Dict[str, Any]:
        """Return the JSON request body, or POST form data."""
        if self.request.content_type == 'application/json':
            try:
                return json.loads(self.request.body or b'{}')
            except json.JSONDecodeError:
                raise ValidationError('Request body is not valid JSON.')
        return self.request.POST.dict()
