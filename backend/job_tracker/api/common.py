from job_tracker.errors import ApiError


def require_data(response, message: str):
    # Empty lists and objects are valid payloads; only missing or falsy scalars are not.
    if response.data is None or response.data in ("", 0, False):
        raise ApiError(message, status_code=response.status_code)
    return response.data


def page_params(page: int | None = None, page_size: int | None = None) -> dict:
    params = {}
    if page:
        params["page"] = int(page)
    if page_size:
        params["page_size"] = int(page_size)
    return params
