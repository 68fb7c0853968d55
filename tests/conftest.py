import pathlib
import sys
from pathlib import Path

import pytest
from pydantic import SecretStr

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from chat_gateway.config import Settings, get_settings  # noqa: E402

TINY_PNG = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00"
    b"\x00\x01\x00\x01\x00\x18\xdd\x8d\xb4\x00\x00\x00\x00IEND\xaeB`\x82"
)


@pytest.fixture
def uploads_dir(tmp_path: Path) -> Path:
    path = tmp_path / "public" / "uploads"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def make_settings(tmp_path: Path, uploads_dir: Path):
    """Build isolated settings; keyword overrides use field names."""

    def _factory(**overrides) -> Settings:
        values = {
            "text_api_key": SecretStr("text-key"),
            "text_api_url": "https://text.example/chat/completions",
            "vision_api_key": SecretStr("vision-key"),
            "vision_api_url": "https://vision.example/chat/completions",
            "vision_model": "vision-model",
            "public_dir": tmp_path / "public",
            "uploads_dir": uploads_dir,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _factory


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def tiny_png() -> bytes:
    return TINY_PNG
