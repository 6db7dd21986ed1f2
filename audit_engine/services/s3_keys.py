from __future__ import annotations


def reconstruct_url_from_s3_key(key: str | None) -> str:
    """Rebuild the page URL encoded in a scrape result key.

    `audits/2024/www_example_com_path_page.json` -> `https://www.example.com/path/page/`.

    Host labels are not delimited in the key, so the host is assumed to be
    `www.<name>.<tld>` or `<name>.<tld>`. Subdomains and multi-part TLDs are
    therefore mapped into the path (`example_co_uk.json` ->
    `https://example.co/uk/`). Downstream consumers rely on this mapping.
    """
    if not key or key.endswith("/"):
        return ""
    filename = key.rsplit("/", 1)[-1]
    if filename.endswith(".json"):
        filename = filename[: -len(".json")]
    parts = [part for part in filename.split("_") if part]
    if not parts:
        return ""

    host_labels = 3 if parts[0] == "www" else 2
    host = ".".join(parts[:host_labels])
    path = "/".join(parts[host_labels:])
    return f"https://{host}/{path}/" if path else f"https://{host}/"
