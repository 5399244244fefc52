"""Shared URL utilities: compare locations and detect the login page."""

from __future__ import annotations

from urllib.parse import urlparse


def same_location(a: str, b: str) -> bool:
    """True when two URLs point at the same path, ignoring query and trailing slash."""
    pa, pb = urlparse(a), urlparse(b)
    return (
        pa.netloc == pb.netloc
        and (pa.path.rstrip("/") or "/") == (pb.path.rstrip("/") or "/")
    )


def is_login_location(current_url: str, login_url: str) -> bool:
    """True while the browser still sits on the login page (host + path prefix)."""
    cur, login = urlparse(current_url), urlparse(login_url)
    if cur.netloc and login.netloc and cur.netloc != login.netloc:
        return False
    login_path = login.path.rstrip("/") or "/"
    if login_path == "/":
        return (cur.path.rstrip("/") or "/") == "/"
    return cur.path.rstrip("/").startswith(login_path)
