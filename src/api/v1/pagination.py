"""Pagination for API v1 list endpoints."""

from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """Page number pagination; clients may ask for up to 200 rows per page."""

    page_size = 25
    page_size_query_param = 'page_size'
    max_page_size = 200


class LargeResultsSetPagination(StandardResultsSetPagination):
    """Directory and training lists are browsed in bigger pages."""

    page_size = 100
    max_page_size = 500
