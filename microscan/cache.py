from pathlib import Path
from typing import Optional, Tuple
import orjson, hashlib, time

CLEAN = Path("data/clean")


def key_for(url: str) -> str:
    return hashlib.sha1(url.encode()).hexdigest()


class PageCache:
    """
    Raw page bodies on disk, keyed by URL, each with a fetched_at sidecar.
    Owned and passed in by the caller; entries older than ttl_s are misses.
    """

    def __init__(self, root: Path, ttl_s: float = 900.0, clock=time.time):
        self.root = Path(root)
        self.ttl_s = ttl_s
        self.clock = clock
        self.root.mkdir(parents=True, exist_ok=True)

    def _paths(self, url: str):
        k = key_for(url)
        return self.root / f"{k}.html", self.root / f"{k}.json"

    def load(self, url: str) -> Optional[Tuple[str, str]]:
        """Return (final_url, html) for a fresh entry, else None."""
        body, meta = self._paths(url)
        if not (body.exists() and meta.exists()):
            return None
        info = orjson.loads(meta.read_bytes())
        if self.clock() - info.get("fetched_at", 0) > self.ttl_s:
            return None
        return info.get("final_url") or url, body.read_text(encoding="utf-8")

    def save(self, url: str, html: str, final_url: Optional[str] = None):
        body, meta = self._paths(url)
        body.write_text(html, encoding="utf-8")
        meta.write_bytes(orjson.dumps({
            "url": url,
            "final_url": final_url or url,
            "fetched_at": self.clock(),
        }))


def append_jsonl(path: Path, obj: dict):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "ab") as f:
        f.write(orjson.dumps(obj) + b"\n")
