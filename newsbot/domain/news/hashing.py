import hashlib
import json

from .models import NewsItemHashInput


def canonicalize_hash_input(hash_input: NewsItemHashInput) -> str:
    # 固定键顺序、无空格、保留非 ASCII 字符
    return json.dumps(
        {
            "source": str(hash_input.source),
            "rawText": str(hash_input.raw_text),
            "publishedAt": hash_input.published_at,
        },
        ensure_ascii=False,
        separators=(",", ":"),
    )


class Sha256Hasher:
    """
    SHA-256 fingerprint over the normalized ``(source, raw_text, published_at)`` triple.

    输入必须已经由调用方归一化（见 ``normalize.py``）。
    """

    def hash(self, hash_input: NewsItemHashInput) -> str:
        canonical = canonicalize_hash_input(hash_input)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
