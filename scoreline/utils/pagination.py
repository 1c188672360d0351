from flask import current_app, request


def paginate(query, serialize):
    """
    Paginate a query from ?page= and ?per_page= arguments

    Args:
        query: SQLAlchemy query to page through
        serialize: Callable turning one row into a dict

    Returns:
        dict with items and paging metadata
    """
    page = request.args.get("page", 1, type=int)
    per_page = request.args.get(
        "per_page", current_app.config.get("ITEMS_PER_PAGE", 10), type=int
    )

    pagination = query.paginate(
        page=max(page, 1),
        per_page=max(per_page, 1),
        max_per_page=current_app.config.get("MAX_ITEMS_PER_PAGE", 100),
        error_out=False,
    )

    return {
        "items": [serialize(item) for item in pagination.items],
        "page": pagination.page,
        "per_page": pagination.per_page,
        "total": pagination.total,
        "pages": pagination.pages,
        "has_next": pagination.has_next,
        "has_prev": pagination.has_prev,
    }
