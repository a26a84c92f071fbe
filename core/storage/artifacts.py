"""JSON artifact storage for persisted monitor state.

Provides a consistent interface for storing and retrieving JSON files
with integrity verification and metadata tracking.
"""

import hashlib
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Union

from core.models.refs import DataReference


def _compute_sha256(data: bytes) -> str:
    """Compute SHA256 hash of bytes."""
    return hashlib.sha256(data).hexdigest()


def _to_jsonable(obj: Any) -> Any:
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json", by_alias=True)
    if isinstance(obj, list):
        return [_to_jsonable(item) for item in obj]
    if isinstance(obj, dict):
        return {key: _to_jsonable(value) for key, value in obj.items()}
    return obj


def put_json(obj: Any, path: Path, ensure_parent: bool = True) -> DataReference:
    """Store a JSON-serializable object and return a DataReference.

    The file is written to a sibling temp file and renamed into place, so a
    crash mid-write leaves the previous content intact.

    Args:
        obj: Object to serialize (dict, list, Pydantic model, or nesting of them)
        path: File path where artifact will be stored
        ensure_parent: Create parent directories if they don't exist

    Returns:
        DataReference with artifact metadata for retrieval

    Raises:
        TypeError: If object is not JSON-serializable
    """
    path = Path(path)
    if ensure_parent:
        path.parent.mkdir(parents=True, exist_ok=True)

    json_str = json.dumps(_to_jsonable(obj), indent=2, ensure_ascii=False, default=str)
    json_bytes = json_str.encode("utf-8")

    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_bytes(json_bytes)
    tmp_path.replace(path)

    return DataReference(
        storage_uri=str(path.absolute()),
        content_hash=_compute_sha256(json_bytes),
        content_type="application/json",
        size_bytes=len(json_bytes),
        stored_at=datetime.utcnow(),
    )


def get_json(ref: DataReference, validate_hash: bool = True) -> Any:
    """Retrieve JSON artifact from a DataReference.

    Args:
        ref: DataReference pointing to the artifact
        validate_hash: Verify content hash matches reference

    Returns:
        Deserialized JSON object

    Raises:
        FileNotFoundError: If artifact path doesn't exist
        ValueError: If hash validation fails
        json.JSONDecodeError: If file is not valid JSON
    """
    path = Path(ref.storage_uri)

    if not path.exists():
        raise FileNotFoundError(f"Artifact not found: {ref.storage_uri}")

    json_bytes = path.read_bytes()

    if validate_hash:
        actual_hash = _compute_sha256(json_bytes)
        if actual_hash != ref.content_hash:
            raise ValueError(
                f"Hash mismatch for {ref.storage_uri}: "
                f"expected {ref.content_hash}, got {actual_hash}"
            )

    return json.loads(json_bytes.decode("utf-8"))


def read_json(path: Path) -> Any:
    """Read a JSON file by path.

    Raises:
        FileNotFoundError: If the file doesn't exist
        json.JSONDecodeError: If file is not valid JSON
    """
    return json.loads(Path(path).read_text(encoding="utf-8"))


class ArtifactStore:
    """Artifact store with configurable base path.

    Provides a convenient wrapper around the put/get functions
    with a consistent base directory.
    """

    def __init__(self, base_path: Union[str, Path]):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def put_json(self, obj: Any, relative_path: str) -> DataReference:
        """Store JSON artifact relative to base path."""
        return put_json(obj, self.resolve_path(relative_path))

    def get_json(self, ref: DataReference, validate_hash: bool = True) -> Any:
        """Retrieve JSON artifact."""
        return get_json(ref, validate_hash)

    def read_json(self, relative_path: str) -> Any:
        """Read JSON artifact relative to base path."""
        return read_json(self.resolve_path(relative_path))

    def exists(self, relative_path: str) -> bool:
        return self.resolve_path(relative_path).exists()

    def resolve_path(self, relative_path: str) -> Path:
        """Resolve a relative path to absolute path."""
        return self.base_path / relative_path
