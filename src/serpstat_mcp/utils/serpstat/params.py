"""Parameter declarations shared by several Serpstat tool tables"""

from .constants import DATE_PATTERN, PAGINATION_DEFAULTS, SEARCH_ENGINES, SORT_ORDERS
from .validation import array, enum, integer, obj, string

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
URL_PATTERN = r"^https?://[^\s/$.?#][^\s]*$"


def search_engine(**kwargs):
    return enum(
        "se",
        SEARCH_ENGINES,
        required=True,
        description='Search engine database code, e.g. "g_us" for Google US',
        **kwargs,
    )


def search_engine_code():
    """Free-form search engine code, for methods that accept any database"""
    return string(
        "se",
        required=True,
        min_length=1,
        description='Search engine database code, e.g. "g_us" for Google US',
    )


def page(default=PAGINATION_DEFAULTS["page"], **kwargs):
    return integer(
        "page", minimum=1, default=default, description="Page number", **kwargs
    )


def size(
    minimum=1,
    maximum=PAGINATION_DEFAULTS["max_size"],
    default=PAGINATION_DEFAULTS["size"],
    **kwargs,
):
    return integer(
        "size",
        minimum=minimum,
        maximum=maximum,
        default=default,
        description=f"Results per page ({minimum}-{maximum})",
        **kwargs,
    )


def order(default=None, **kwargs):
    return enum(
        "order", SORT_ORDERS, default=default, description="Sort order", **kwargs
    )


def filters(description="Filter conditions, passed through to the API"):
    return obj("filters", description=description)


def sort_object():
    return obj("sort", description="Sorting in the format {field: order}")


def domain(name="domain", required=True, description="Domain name, e.g. example.com"):
    return string(
        name,
        required=required,
        min_length=1,
        max_length=100,
        description=description,
    )


def url(name="url", required=True, description="Full page URL"):
    return string(
        name,
        required=required,
        pattern=URL_PATTERN,
        pattern_message="must be a valid URL",
        description=description,
    )


def string_list(name, description, **kwargs):
    return array(name, items=string("item"), description=description, **kwargs)


def date(name, required=False, description="Date in YYYY-MM-DD format"):
    return string(
        name,
        required=required,
        pattern=DATE_PATTERN,
        pattern_message="must be in YYYY-MM-DD format",
        description=description,
    )


def positive_id(name, description="", **kwargs):
    return integer(name, minimum=1, description=description, **kwargs)
