from __future__ import annotations
import os, tempfile, io, json

__all__ = ["atomic_write_text", "write_json_atomic", "append_jsonl_atomic"]

def atomic_write_text(path: str, text: str, encoding: str = "utf-8") -> None:
    """
    Escritura atómica por reemplazo: archivo temporal en el mismo directorio + os.replace().
    Un lector concurrente ve el contenido anterior completo o el nuevo completo.
    """
    path = os.fspath(path)
    d = os.path.dirname(path) or "."
    os.makedirs(d, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp-", dir=d)
    try:
        with io.open(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)

def write_json_atomic(path: str, obj, ensure_ascii: bool = False, separators=(",", ":")) -> None:
    s = json.dumps(obj, ensure_ascii=ensure_ascii, separators=separators)
    atomic_write_text(path, s)

def append_jsonl_atomic(path: str, obj, ensure_ascii: bool = False) -> None:
    """
    Anexa una línea JSON (JSONL) con flush+fsync; no reescribe el archivo completo.
    """
    path = os.fspath(path)
    d = os.path.dirname(path) or "."
    os.makedirs(d, exist_ok=True)
    line = json.dumps(obj, ensure_ascii=ensure_ascii, default=str)
    with open(path, "a", encoding="utf-8", newline="\n") as f:
        f.write(line + "\n")
        f.flush()
        os.fsync(f.fileno())
