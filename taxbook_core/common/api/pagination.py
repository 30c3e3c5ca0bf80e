# taxbook_core/common/api/pagination.py
from __future__ import annotations

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class ListingPagination(PageNumberPagination):
    """
    Appointment and document listings.

    DRF's {count, next, previous, results} plus `page` and `pages`, so a
    calendar or intake screen can draw its pager without parsing links.
    """

    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100

    def get_paginated_response(self, data):
        return Response(
            {
                "count": self.page.paginator.count,
                "page": self.page.number,
                "pages": self.page.paginator.num_pages,
                "next": self.get_next_link(),
                "previous": self.get_previous_link(),
                "results": data,
            }
        )

    def get_paginated_response_schema(self, schema):
        schema = super().get_paginated_response_schema(schema)
        schema["properties"]["page"] = {"type": "integer", "example": 1}
        schema["properties"]["pages"] = {"type": "integer", "example": 3}
        return schema
