"""Multipart form assembly for Ideogram API requests."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple, Union

from .security import ImageBytes, detect_image_format

FileField = Tuple[str, Tuple[str, bytes, str]]


@dataclass
class MultipartForm:
    """Text fields and file parts, in the shape httpx expects."""

    data: Dict[str, Union[str, List[str]]] = field(default_factory=dict)
    files: List[FileField] = field(default_factory=list)

    def add_field(self, name: str, value: str) -> None:
        existing = self.data.get(name)
        if existing is None:
            self.data[name] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            self.data[name] = [existing, value]

    def add_file(self, name: str, image: Union[ImageBytes, bytes]) -> None:
        if not isinstance(image, ImageBytes):
            data = bytes(image)
            image = ImageBytes(data=data, format=detect_image_format(data), source="memory")
        fmt = image.format
        self.files.append((name, (f"image.{fmt.extension}", image.data, fmt.mime_type)))

    def parts(self) -> List[Tuple[str, tuple]]:
        """All fields as multipart parts, text fields first.

        Text fields carry no filename, so the body is multipart even when no
        file is attached.
        """
        parts: List[Tuple[str, tuple]] = []
        for name, value in self.data.items():
            for item in value if isinstance(value, list) else [value]:
                parts.append((name, (None, item.encode("utf-8"))))
        parts.extend(self.files)
        return parts


def _is_binary(value: Any) -> bool:
    return isinstance(value, (ImageBytes, bytes, bytearray, memoryview))


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_form_data(params: Mapping[str, Any]) -> MultipartForm:
    """Convert request parameters into a multipart form.

    - ``None`` values are skipped
    - image bytes become file parts named after their detected format
    - dicts are JSON-encoded (``None`` entries dropped)
    - lists become repeated fields
    - everything else is stringified

    Raises:
        ContentError: If raw bytes are not a recognized image
    """
    form = MultipartForm()

    for key, value in params.items():
        if value is None:
            continue

        if _is_binary(value):
            form.add_file(key, value)
        elif isinstance(value, dict):
            payload = {k: v for k, v in value.items() if v is not None}
            form.add_field(key, json.dumps(payload))
        elif isinstance(value, (list, tuple)):
            for item in value:
                if _is_binary(item):
                    form.add_file(key, item)
                else:
                    form.add_field(key, _stringify(item))
        else:
            form.add_field(key, _stringify(value))

    return form
