from __future__ import annotations

import mimetypes
import os
from pathlib import Path
from typing import Iterable, List, Optional

from mutagen import File as MutagenFile


AUDIO_EXTENSIONS = {".mp3", ".ogg", ".wav", ".flac", ".m4a", ".aac", ".wma", ".opus"}


def normalize_path(path: str) -> str:
    """Absolute, normalized form used as the song identity key."""
    return os.path.normpath(os.path.abspath(os.path.expanduser(str(path))))


def is_audio_file(path: Path) -> bool:
    return path.suffix.lower() in AUDIO_EXTENSIONS


def iter_audio_files(root: Path) -> Iterable[Path]:
    for path in sorted(root.rglob("*")):
        if path.is_file() and is_audio_file(path):
            yield path


def expand_import_paths(paths: Iterable[str]) -> List[str]:
    """Replace directories with the audio files beneath them.

    Plain file paths are passed through as given (even without an audio
    extension, the user dropped them explicitly). Duplicates are removed while
    preserving the first occurrence.
    """
    out: List[str] = []
    seen = set()
    for raw in paths:
        p = Path(normalize_path(raw))
        if p.is_dir():
            found = [str(f) for f in iter_audio_files(p)]
        else:
            found = [str(p)]
        for f in found:
            if f in seen:
                continue
            seen.add(f)
            out.append(f)
    return out


def audio_length_seconds(path: Path) -> Optional[float]:
    try:
        mf = MutagenFile(str(path))
        if mf is None or not hasattr(mf, "info") or mf.info is None:
            return None
        length = getattr(mf.info, "length", None)
        if length is None:
            return None
        return float(length)
    except Exception:
        return None


def guess_mime(path: Path) -> str:
    mime, _ = mimetypes.guess_type(str(path))
    return mime or "application/octet-stream"
