from fastapi import HTTPException, Request


class CookieGate:
    """FastAPI dependency consuming the upstream authentication signal.

    The login flow lives outside this service; it marks allowed clients
    with a cookie.  We only check that the cookie is present.  With no
    cookie name configured every request is allowed.
    """

    def __init__(self, cookie_name: str | None):
        self.cookie_name = cookie_name

    def __call__(self, request: Request):
        if self.cookie_name and not request.cookies.get(self.cookie_name):
            raise HTTPException(status_code=401, detail="Authentication required")
