# backend/pagination.py

from rest_framework.pagination import PageNumberPagination


class StandardPagination(PageNumberPagination):
    """
    Default list pagination.

    ?page=<n>&page_size=<n> (page_size capped at 100)
    """

    page_size_query_param = "page_size"
    max_page_size = 100
