from common import llm
from common.ids import generate_id, now_ms
from common.jsonio import load_json, atomic_write_json

__all__ = ["llm", "generate_id", "now_ms", "load_json", "atomic_write_json"]
