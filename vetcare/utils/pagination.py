from flask import current_app, request


def page_params():
    """limit/offset from the query string, clamped to the configured bounds"""
    default = current_app.config.get('BOOKING_PAGE_SIZE', 10)
    maximum = current_app.config.get('MAX_PAGE_SIZE', 100)

    limit = request.args.get('limit', default, type=int)
    offset = request.args.get('offset', 0, type=int)
    if limit < 1 or limit > maximum:
        limit = default
    if offset < 0:
        offset = 0
    return limit, offset
