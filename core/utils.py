import logging

from rest_framework import status
from rest_framework.exceptions import (
    AuthenticationFailed,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def rest_api_formatter(
        data=None,
        status_code=200,
        success=True,
        message='',
        error_code=None,
        error_message=None,
        error_fields=None
):
    """
    Wrap every API payload in the same envelope.

    {
        "success": bool,
        "message": str,
        "data": ...,
        "error": {"code": str, "message": str, "fields": dict} | None
    }
    """
    error = None
    if not success:
        error = {
            'code': error_code or 'ERROR',
            'message': error_message or message,
            'fields': error_fields or {},
        }

    return Response(
        {
            'success': success,
            'message': message,
            'data': data,
            'error': error,
        },
        status=status_code
    )


class Pagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100

    def get_paginated_response(self, data):
        return rest_api_formatter(
            data={
                'results': data,
                'pagination': {
                    'current_page': self.page.number,
                    'next_page': self.page.next_page_number() if self.page.has_next() else None,
                    'previous_page': self.page.previous_page_number() if self.page.has_previous() else None,
                    'total_pages': self.page.paginator.num_pages,
                    'total_count': self.page.paginator.count,
                    'page_count': len(data),
                },
            },
            status_code=200,
            success=True,
            message='Results retrieved successfully'
        )


def api_exception_handler(exc, context):
    """
    DRF exception handler that answers with the same envelope as the views.
    Errors the views do not catch themselves (auth, permissions, parse
    errors, unexpected exceptions) end up here.
    """
    response = exception_handler(exc, context)
    view_name = context['view'].__class__.__name__ if context.get('view') else 'unknown view'

    if response is None:
        logger.exception(f"Unhandled error in {view_name}: {str(exc)}")
        return rest_api_formatter(
            data=None,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            success=False,
            message='An unexpected error occurred',
            error_code='INTERNAL_ERROR',
            error_message='Please try again later'
        )

    if isinstance(exc, (NotAuthenticated, AuthenticationFailed)):
        error_code = 'NOT_AUTHENTICATED'
    elif isinstance(exc, PermissionDenied):
        error_code = 'FORBIDDEN'
    elif isinstance(exc, NotFound) or response.status_code == status.HTTP_404_NOT_FOUND:
        error_code = 'NOT_FOUND'
    elif isinstance(exc, ValidationError):
        error_code = 'VALIDATION_ERROR'
    else:
        error_code = 'ERROR'

    detail = response.data.get('detail') if isinstance(response.data, dict) else None
    fields = response.data if detail is None else None
    logger.warning(f"{view_name} rejected request with {response.status_code}: {error_code}")

    formatted = rest_api_formatter(
        data=None,
        status_code=response.status_code,
        success=False,
        message=str(detail) if detail is not None else 'Request could not be processed',
        error_code=error_code,
        error_message=str(detail) if detail is not None else None,
        error_fields=fields
    )
    for header, value in response.items():
        formatted[header] = value
    return formatted
