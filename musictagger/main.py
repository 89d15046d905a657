from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse

from .config import AppConfig, configure_logging, load_config, save_config
from .errors import NotFound, TaggerError
from .library import Song, Tag
from .playlist import FilterMode, build_playlist
from .project import Project, ensure_project_suffix
from .session import PlaybackSession
from .utils import guess_mime

logger = logging.getLogger(__name__)


# State is only touched from the event loop thread: every handler stays async.
class State:
    def __init__(self, cfg: Optional[AppConfig] = None) -> None:
        self.cfg: AppConfig = cfg if cfg is not None else load_config()
        self.project = Project()
        self.session = PlaybackSession()
        self.session.volume = self.cfg.volume
        self.session.random = self.cfg.random
        self.session.repeat = self.cfg.repeat

    def load(self) -> None:
        if not self.cfg.project_file:
            return
        try:
            self.project.open_or_create(self.cfg.project_file)
        except TaggerError as exc:
            # Keep serving with an empty project; the user can open another file.
            logger.error("Could not open project %s: %s", self.cfg.project_file, exc)
        self.reset_playback()

    def changed(self) -> None:
        self.project.mark_dirty()
        if self.cfg.autosave and self.project.current_path is not None:
            self.project.save()

    def reset_playback(self) -> None:
        self.session.stop()
        self.session.set_playlist([])

    def remember_project(self, path: Path) -> None:
        self.cfg.project_file = str(path)
        save_config(self.cfg)

    def remember_playback(self) -> None:
        self.cfg.volume = self.session.volume
        self.cfg.random = self.session.random
        self.cfg.repeat = self.session.repeat
        save_config(self.cfg)


configure_logging()
state = State()
state.load()

app = FastAPI(title="Music Tagger", version="2.2.0")


@app.exception_handler(TaggerError)
async def tagger_error_handler(request: Request, exc: TaggerError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def require_state() -> State:
    return state


# ---- payload helpers


async def _json_object(request: Request) -> Dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Expected a JSON body")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Expected a JSON object")
    return payload


def _str_list(payload: Dict[str, Any], key: str) -> List[str]:
    raw = payload.get(key, [])
    if not isinstance(raw, list):
        raise HTTPException(status_code=400, detail=f"{key} must be a list")
    return [str(x) for x in raw if str(x).strip()]


def _tag(st: State, tag_id: Any) -> Tag:
    try:
        tid = int(tag_id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"Invalid tag id: {tag_id!r}")
    tag = st.project.index.get_tag(tid)
    if tag is None:
        raise NotFound("Tag", tid)
    return tag


def _song(st: State, path: str) -> Song:
    song = st.project.index.get_song(path)
    if song is None:
        raise NotFound("Song", path)
    return song


def _tags_from(st: State, payload: Dict[str, Any], key: str = "tag_ids") -> List[Tag]:
    raw = payload.get(key, [])
    if not isinstance(raw, list):
        raise HTTPException(status_code=400, detail=f"{key} must be a list")
    return [_tag(st, x) for x in raw]


def _songs_from(st: State, payload: Dict[str, Any], key: str = "paths") -> List[Song]:
    return [_song(st, p) for p in _str_list(payload, key)]


def _tag_out(t: Tag) -> Dict[str, Any]:
    return {
        "id": t.id,
        "name": t.name,
        "category": t.category,
        "song_count": len(t.song_paths),
    }


def _song_out(s: Song) -> Dict[str, Any]:
    return {
        "path": s.path,
        "file_name": s.file_name,
        "song_name": s.song_name,
        "tag_ids": sorted(s.tag_ids),
    }


def _playback_out(st: State) -> Dict[str, Any]:
    ses = st.session
    cur = ses.current_song()
    return {
        "playlist": [_song_out(s) for s in ses.playlist],
        "current_index": ses.current_index,
        "current": _song_out(cur) if cur is not None else None,
        "playing": ses.playing,
        "position": ses.position,
        "length": ses.current_length() if cur is not None else None,
        "volume": ses.volume,
        "muted": ses.muted,
        "random": ses.random,
        "repeat": ses.repeat,
        "fading": ses.fading,
    }


# ---- status


@app.get("/api/status")
async def api_status() -> Dict[str, Any]:
    st = require_state()
    proj = st.project
    return {
        "project_file": str(proj.current_path) if proj.current_path else "",
        "dirty": proj.dirty,
        "tag_count": len(proj.index.tags),
        "song_count": len(proj.index.songs),
        "import_count": len(proj.staging),
        "autosave": st.cfg.autosave,
    }


# ---- tags


@app.get("/api/tags")
async def api_tags() -> Dict[str, Any]:
    st = require_state()
    index = st.project.index
    return {
        "tags": [_tag_out(t) for t in index.tags],
        "categories": {cat: [t.id for t in tags] for cat, tags in index.tags_by_category().items()},
    }


@app.post("/api/tags")
async def api_create_tag(request: Request) -> Dict[str, Any]:
    st = require_state()
    payload = await _json_object(request)
    name = str(payload.get("name", "")).strip()
    category = str(payload.get("category", "")).strip()
    raw_id = payload.get("id")
    requested: Optional[int] = None
    if raw_id is not None and str(raw_id).strip() != "":
        try:
            requested = int(raw_id)
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail="id must be an integer")

    tag = st.project.index.create_tag(name, category, requested)
    st.changed()
    return {"ok": True, "tag": _tag_out(tag)}


@app.put("/api/tags/{tag_id}")
async def api_update_tag(tag_id: int, request: Request) -> Dict[str, Any]:
    st = require_state()
    payload = await _json_object(request)
    tag = _tag(st, tag_id)
    name = str(payload.get("name", tag.name)).strip()
    category = str(payload.get("category", tag.category)).strip()
    st.project.index.update_tag(tag, name, category)
    st.changed()
    return {"ok": True, "tag": _tag_out(tag)}


@app.delete("/api/tags/{tag_id}")
async def api_delete_tag(tag_id: int) -> Dict[str, Any]:
    st = require_state()
    tag = st.project.index.get_tag(tag_id)
    if tag is None:
        return {"ok": True, "removed": False}
    st.project.index.remove_tag(tag)
    st.changed()
    return {"ok": True, "removed": True}


# ---- songs


@app.get("/api/songs")
async def api_songs() -> Dict[str, Any]:
    st = require_state()
    return {"songs": [_song_out(s) for s in st.project.index.songs]}


@app.post("/api/songs/relocate")
async def api_relocate_song(request: Request) -> Dict[str, Any]:
    """Rename or move one song's file and keep its tags."""
    st = require_state()
    payload = await _json_object(request)
    new_path = str(payload.get("new_path", "")).strip()
    if not new_path:
        raise HTTPException(status_code=400, detail="new_path required")
    song = _song(st, str(payload.get("path", "")))
    st.project.index.relocate_song(song, new_path)
    st.changed()
    return {"ok": True, "song": _song_out(song)}


@app.post("/api/songs/move")
async def api_move_songs(request: Request) -> Dict[str, Any]:
    st = require_state()
    payload = await _json_object(request)
    directory = str(payload.get("directory", "")).strip()
    if not directory:
        raise HTTPException(status_code=400, detail="directory required")
    songs = _songs_from(st, payload)
    failures = st.project.index.move_songs(songs, directory)
    if len(failures) < len(songs):
        st.changed()
    return {
        "ok": not failures,
        "moved": len(songs) - len(failures),
        "failures": [f.to_dict() for f in failures],
    }


@app.post("/api/songs/remove")
async def api_remove_songs(request: Request) -> Dict[str, Any]:
    """Remove songs from the project, and from the drive if delete_files is set."""
    st = require_state()
    payload = await _json_object(request)
    songs = _songs_from(st, payload)
    delete_files = bool(payload.get("delete_files", False))

    playing = st.session.current_song()
    failures = st.project.remove_songs(songs, also_delete_file=delete_files)
    removed = len({id(s) for s in songs if not st.project.index.has_song(s)})
    st.session.set_playlist([s for s in st.session.playlist if st.project.index.has_song(s)])
    if playing is not None and not st.project.index.has_song(playing):
        st.session.stop()
    st.changed()
    return {
        "ok": not failures,
        "removed": removed,
        "failures": [f.to_dict() for f in failures],
    }


# ---- import staging


@app.get("/api/import")
async def api_import() -> Dict[str, Any]:
    st = require_state()
    return {"songs": [_song_out(s) for s in st.project.staging.songs]}


@app.post("/api/import")
async def api_add_to_import(request: Request) -> Dict[str, Any]:
    """Stage files; directories are expanded to the audio files inside them."""
    st = require_state()
    payload = await _json_object(request)
    added = st.project.staging.add_to_import(_str_list(payload, "paths"))
    st.changed()
    return {"ok": True, "added": [_song_out(s) for s in added]}


@app.post("/api/import/remove")
async def api_remove_from_import(request: Request) -> Dict[str, Any]:
    st = require_state()
    payload = await _json_object(request)
    st.project.staging.remove_from_import(_songs_from(st, payload))
    st.changed()
    return {"ok": True, "import_count": len(st.project.staging)}


@app.post("/api/import/clear")
async def api_clear_import() -> Dict[str, Any]:
    st = require_state()
    st.project.staging.clear_import()
    st.changed()
    return {"ok": True, "import_count": len(st.project.staging)}


@app.post("/api/import/assign")
async def api_assign_tags(request: Request) -> Dict[str, Any]:
    st = require_state()
    payload = await _json_object(request)
    songs = _songs_from(st, payload)
    tags = _tags_from(st, payload)
    st.project.staging.assign_tags(
        songs,
        tags,
        remove_from_import_after=bool(payload.get("remove_from_import", False)),
        overwrite_existing=bool(payload.get("overwrite", False)),
    )
    st.changed()
    return {"ok": True, "songs": [_song_out(s) for s in songs]}


@app.post("/api/import/retag")
async def api_retag(request: Request) -> Dict[str, Any]:
    """Send songs (usually from the playlist) back to the import list."""
    st = require_state()
    payload = await _json_object(request)
    added = st.project.staging.retag(_songs_from(st, payload))
    if added:
        st.changed()
    return {"ok": True, "added": len(added)}


# ---- playlist + playback


@app.post("/api/playlist")
async def api_build_playlist(request: Request) -> Dict[str, Any]:
    st = require_state()
    payload = await _json_object(request)
    try:
        mode = FilterMode(str(payload.get("mode", FilterMode.STANDARD.value)).lower())
    except ValueError:
        raise HTTPException(status_code=400, detail="mode must be 'standard', 'and' or 'or'")
    songs = build_playlist(st.project.index, _tags_from(st, payload), mode)
    st.session.set_playlist(songs)
    return {"mode": mode.value, "songs": [_song_out(s) for s in songs]}


@app.get("/api/playback")
async def api_playback() -> Dict[str, Any]:
    return _playback_out(require_state())


@app.post("/api/playback/{action}")
async def api_playback_action(action: str, request: Request) -> Dict[str, Any]:
    st = require_state()
    ses = st.session
    body = await request.body()
    payload = await _json_object(request) if body.strip() else {}

    simple = {
        "play": ses.play,
        "pause": ses.pause,
        "stop": ses.stop,
        "next": ses.next,
        "previous": ses.previous,
        "first": ses.first,
        "last": ses.last,
        "tick": ses.tick,
        "ended": ses.on_media_ended,
        "failed": ses.on_media_failed,
        "fade": ses.start_fade,
        "fade_step": ses.fade_step,
    }
    if action in simple:
        simple[action]()
    elif action == "select":
        song = _song(st, str(payload.get("path", "")))
        if bool(payload.get("play", True)):
            ses.play_song(song)
        else:
            ses.set_current(song)
    elif action in ("seek", "position"):
        try:
            seconds = float(payload.get("seconds", 0))
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail="seconds must be a number")
        ses.seek(seconds)
        if action == "position":
            # The browser player reports where it is; advance if it ran out.
            ses.tick()
    elif action == "volume":
        try:
            ses.volume = int(payload.get("volume", ses.volume))
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail="volume must be an integer")
        st.remember_playback()
    elif action == "mute":
        ses.muted = bool(payload.get("muted", not ses.muted))
    elif action in ("random", "repeat"):
        setattr(ses, action, bool(payload.get("enabled", not getattr(ses, action))))
        st.remember_playback()
    else:
        raise HTTPException(status_code=404, detail=f"Unknown playback action: {action}")

    return _playback_out(st)


# ---- project files


def _project_path(payload: Dict[str, Any]) -> Path:
    raw = str(payload.get("path", "")).strip()
    if not raw:
        raise HTTPException(status_code=400, detail="path required")
    try:
        return ensure_project_suffix(Path(raw).expanduser())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Not a usable project file name: {raw!r}")


@app.post("/api/project/new")
async def api_project_new(request: Request) -> Dict[str, Any]:
    st = require_state()
    path = _project_path(await _json_object(request))
    st.project.new(path)
    st.reset_playback()
    st.remember_project(path)
    return {"ok": True, "project_file": str(path)}


@app.post("/api/project/open")
async def api_project_open(request: Request) -> Dict[str, Any]:
    st = require_state()
    payload = await _json_object(request)
    raw = str(payload.get("path", "")).strip()
    if not raw:
        raise HTTPException(status_code=400, detail="path required")
    path = Path(raw).expanduser()
    st.project.load(path)
    st.reset_playback()
    st.remember_project(path)
    return {"ok": True, "project_file": str(path), "tag_count": len(st.project.index.tags)}


@app.post("/api/project/save")
async def api_project_save(request: Request) -> Dict[str, Any]:
    st = require_state()
    body = await request.body()
    payload = await _json_object(request) if body.strip() else {}
    target = _project_path(payload) if payload.get("path") else None
    path = st.project.save(target)
    if target is not None:
        st.remember_project(path)
    return {"ok": True, "project_file": str(path)}


# ---- audio for the browser player


@app.get("/audio")
async def serve_audio(path: str) -> FileResponse:
    st = require_state()
    song = _song(st, path)
    p = Path(song.path)
    if not p.exists():
        raise HTTPException(status_code=404, detail="File missing")
    return FileResponse(path=str(p), media_type=guess_mime(p), filename=p.name)
