"""Helpers for turning scraped listing URLs into stable identities."""

from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

# Query parameters that change between scrapes without changing the listing.
TRACKING_PARAMS = frozenset({"refid", "trackingid", "trk", "position", "pagenum", "vjk", "from"})

# Hosts whose listing identity lives in a single query parameter, mapped to
# that parameter and the path every link for the listing is rewritten to.
IDENTITY_PARAMS = {
    "indeed.com": ("jk", "/viewjob"),
}


def _identity_rule(host: str):
    for domain, rule in IDENTITY_PARAMS.items():
        if host == domain or host.endswith("." + domain):
            return rule
    return None


def canonicalize_url(url: str) -> str:
    """Normalise a listing URL so repeated scrapes map to the same string.

    Lower-cases scheme and host, drops the fragment, trailing slash and
    tracking parameters. For hosts listed in ``IDENTITY_PARAMS`` a link that
    carries the identifying parameter is rebuilt as ``<path>?<param>=<value>``
    whatever its original path; links without it get the generic treatment.
    """
    url = (url or "").strip()
    if not url:
        return ""

    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = parts.netloc.lower()
    params = parse_qsl(parts.query, keep_blank_values=True)

    rule = _identity_rule(host)
    if rule:
        param, identity_path = rule
        value = next((v for k, v in params if k == param and v), None)
        if value:
            return urlunsplit((scheme, host, identity_path, urlencode([(param, value)]), ""))

    path = parts.path.rstrip("/") or ("/" if host else "")
    params = [
        (k, v)
        for k, v in params
        if k.lower() not in TRACKING_PARAMS and not k.lower().startswith("utm_")
    ]
    query = urlencode(sorted(params))

    return urlunsplit((scheme, host, path, query, ""))


def index_key(url: str) -> str:
    """Percent-encode a canonical URL for use as a semantic index id."""
    return quote(canonicalize_url(url), safe="-_.!~*'()")
