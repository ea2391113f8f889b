"""Version ordering helpers used to pick the latest published package."""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Tuple

__all__ = [
    "is_prerelease",
    "latest_version",
    "normalize_version",
    "version_key",
]

_STAGE_ORDER: dict[str, int] = {
    "dev": 0,
    "nightly": 0,
    "preview": 5,

    "a": 10,
    "alpha": 10,

    "b": 20,
    "beta": 20,

    "pre": 30,

    "rc": 40,
    "candidate": 40,
}


def normalize_version(version: Optional[str]) -> Optional[str]:
    """Return the stripped version, or ``None`` for empty and ``latest`` values."""

    if version is None:
        return None
    v = version.strip()
    if not v or v.lower() == "latest":
        return None
    return v


def is_prerelease(version: str) -> bool:
    core = (version or "").split("+", 1)[0]
    return "-" in core


def _split_segment_tokens(seg: str) -> Tuple[str, List[str]]:
    s = (seg or "").strip()
    if "-" not in s:
        return s, []
    parts = [p for p in s.split("-") if p != ""]
    if not parts:
        return s, []
    return parts[0], parts[1:]


def _tokenize_text_and_int(s: str) -> List[Any]:
    s = (s or "").strip()
    if not s:
        return []
    out: List[Any] = []
    i = 0
    while i < len(s):
        if s[i].isdigit():
            j = i
            while j < len(s) and s[j].isdigit():
                j += 1
            out.append((0, int(s[i:j])))
            i = j
        else:
            j = i
            while j < len(s) and not s[j].isdigit():
                j += 1
            out.append((1, s[i:j].lower()))
            i = j
    return out


def _qualifier_rank(tokens: List[str]) -> Tuple[int, int, Tuple[Any, ...]]:
    # Stable releases carry no qualifier and sort after every prerelease.
    if not tokens:
        return (1000, 0, ())

    flat: List[Any] = []
    for token in tokens:
        flat.extend(_tokenize_text_and_int(token))

    stage_rank: Optional[int] = None
    stage_num = 0
    extra: List[Any] = []
    for typ, val in flat:
        if typ == 1 and stage_rank is None and val in _STAGE_ORDER:
            stage_rank = _STAGE_ORDER[val]
            continue
        if typ == 0 and stage_rank is not None and not stage_num:
            stage_num = val
            continue
        extra.append((typ, val))

    return (50 if stage_rank is None else stage_rank, stage_num, tuple(extra))


def version_key(v: str) -> Tuple[Tuple[List[Any], int, int, Tuple[Any, ...]], ...]:
    core = (v or "").split("+", 1)[0]
    segs = [s for s in core.split(".") if s != ""]
    out: List[Tuple[List[Any], int, int, Tuple[Any, ...]]] = []
    for seg in segs:
        base, qual = _split_segment_tokens(seg)
        stage_rank, stage_num, extra = _qualifier_rank(qual)
        out.append((_tokenize_text_and_int(base), stage_rank, stage_num, extra))
    return tuple(out)


def latest_version(versions: Iterable[str], *, include_prerelease: bool = False) -> Optional[str]:
    """Pick the highest version, preferring stable releases.

    Prereleases are considered when ``include_prerelease`` is set or when the
    package has never shipped a stable release.
    """

    candidates = [v.strip() for v in versions if v and v.strip()]
    if not candidates:
        return None
    if not include_prerelease:
        stable = [v for v in candidates if not is_prerelease(v)]
        if stable:
            candidates = stable
    return max(candidates, key=version_key)
