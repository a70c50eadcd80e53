"""Local file tools: read, browse, create, edit, move, rename and delete."""

import base64
import logging
import mimetypes
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

MAX_TEXT_BYTES = 1024 * 1024
MAX_LISTING_ENTRIES = 200


def _resolve(path: Optional[str]) -> Path:
    if not path or not str(path).strip():
        raise ValueError("A file path is required")
    return Path(str(path).strip()).expanduser()


def read_file(file_path: str, as_base64: bool = False) -> dict[str, Any]:
    path = _resolve(file_path)
    if not path.is_file():
        return {"success": False, "error": f"File not found: {path}"}

    size = path.stat().st_size
    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    if as_base64:
        return {
            "success": True,
            "filePath": str(path),
            "filename": path.name,
            "mimeType": mime_type,
            "size": size,
            "base64Content": base64.b64encode(path.read_bytes()).decode("ascii"),
        }

    if size > MAX_TEXT_BYTES:
        return {
            "success": False,
            "error": f"File is too large to read as text ({size} bytes). Use asBase64=true.",
        }
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return {"success": False, "error": "File is not UTF-8 text. Use asBase64=true."}
    return {
        "success": True,
        "filePath": str(path),
        "filename": path.name,
        "mimeType": mime_type,
        "size": size,
        "content": content,
    }


def browse_files(dir_path: Optional[str] = None) -> dict[str, Any]:
    path = _resolve(dir_path) if dir_path else Path.home()
    if not path.is_dir():
        return {"success": False, "error": f"Directory not found: {path}"}

    entries = []
    for child in sorted(path.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower())):
        try:
            stat = child.stat()
        except OSError:
            continue
        entries.append(
            {
                "name": child.name,
                "type": "directory" if child.is_dir() else "file",
                "size": stat.st_size if child.is_file() else None,
                "modified": datetime.fromtimestamp(stat.st_mtime).isoformat(timespec="seconds"),
            }
        )

    return {
        "success": True,
        "dirPath": str(path),
        "count": len(entries),
        "truncated": len(entries) > MAX_LISTING_ENTRIES,
        "entries": entries[:MAX_LISTING_ENTRIES],
    }


def create_file(file_path: str, content: Optional[str] = "", overwrite: bool = False) -> dict[str, Any]:
    path = _resolve(file_path)
    if path.exists() and not overwrite:
        return {"success": False, "error": f"File already exists: {path}. Pass overwrite=true to replace it."}
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content or "", encoding="utf-8")
    logger.info("Created file %s", path)
    return {"success": True, "filePath": str(path), "size": path.stat().st_size}


def edit_file(file_path: str, content: str, mode: str = "write") -> dict[str, Any]:
    path = _resolve(file_path)
    if mode not in ("write", "append"):
        return {"success": False, "error": f"Invalid mode: {mode}. Use 'write' or 'append'."}
    if not path.is_file():
        return {"success": False, "error": f"File not found: {path}"}

    with path.open("a" if mode == "append" else "w", encoding="utf-8") as f:
        f.write(content or "")
    logger.info("Edited file %s (%s)", path, mode)
    return {"success": True, "filePath": str(path), "mode": mode, "size": path.stat().st_size}


def move_file(source_path: str, destination_path: str) -> dict[str, Any]:
    source = _resolve(source_path)
    destination = _resolve(destination_path)
    if not source.exists():
        return {"success": False, "error": f"Source not found: {source}"}
    if destination.is_dir():
        destination = destination / source.name
    if destination.exists():
        return {"success": False, "error": f"Destination already exists: {destination}"}

    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(source), str(destination))
    logger.info("Moved %s -> %s", source, destination)
    return {"success": True, "from": str(source), "to": str(destination)}


def rename_file(file_path: str, new_name: str) -> dict[str, Any]:
    path = _resolve(file_path)
    if not new_name or "/" in new_name or "\\" in new_name:
        return {"success": False, "error": "newName must be a plain file name without directories"}
    if not path.exists():
        return {"success": False, "error": f"File not found: {path}"}

    target = path.with_name(new_name)
    if target.exists():
        return {"success": False, "error": f"A file named {new_name} already exists"}
    path.rename(target)
    logger.info("Renamed %s -> %s", path, target)
    return {"success": True, "from": str(path), "to": str(target)}


def delete_file(file_path: str, confirm: bool = False) -> dict[str, Any]:
    path = _resolve(file_path)
    if not confirm:
        return {
            "success": False,
            "error": "Deletion not confirmed. Ask the user, then call again with confirm=true.",
        }
    if not path.is_file():
        return {"success": False, "error": f"File not found: {path}"}
    path.unlink()
    logger.info("Deleted file %s", path)
    return {"success": True, "filePath": str(path), "message": "File deleted"}
