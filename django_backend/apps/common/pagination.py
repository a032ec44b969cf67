"""``page``/``limit`` query-string paging used by list endpoints that report ``total_pages``."""
import math

from rest_framework.exceptions import ValidationError

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def positive_int(value, default, name):
    if value in (None, ""):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError({name: "Must be a positive integer."})
    if number < 1:
        raise ValidationError({name: "Must be a positive integer."})
    return number


def page_params(request, default_limit=DEFAULT_PAGE_SIZE):
    page = positive_int(request.query_params.get("page"), 1, "page")
    limit = min(positive_int(request.query_params.get("limit"), default_limit, "limit"), MAX_PAGE_SIZE)
    return page, limit


def paginate(qs, page, limit):
    """Returns ``(items, total, total_pages)`` for one page of ``qs``."""
    total = qs.count()
    offset = (page - 1) * limit
    return qs[offset:offset + limit], total, math.ceil(total / limit)
