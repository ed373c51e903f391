import io
import pytest
import yaml
from pathlib import Path
from PIL import Image
from avify.config.models import AppConfig
from avify.infrastructure.event_bus import EventBus
from avify.infrastructure.image_codec import EncodedImage

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config():
    """Returns a sample AppConfig object for testing."""
    return AppConfig(
        general={
            "threads": 4,
            "extensions": ["gif", "jpg", "jpeg", "png", "webp"],
            "remove_originals": True,
            "on_collision": "overwrite",
            "discovery_report_every": 20,
            "debug": False,
        },
        codec={
            "format": "avif",
            "quality": 80,
            "effort": 5,
            "lossless": False,
        },
    )

@pytest.fixture
def config_yaml_path(tmp_path):
    """Creates a temporary YAML config file."""
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "avify.yaml"

    content = {
        'general': {
            'threads': 2,
            'extensions': ['jpg', 'png'],
            'remove_originals': False,
            'on_collision': 'error',
            'log_path': str(tmp_path / "logs" / "avify.log"),
        },
        'codec': {
            'format': 'webp',
            'quality': 70,
            'effort': 3,
        }
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file

# ============================================================================
# EventBus Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

# ============================================================================
# Codec Fixtures
# ============================================================================

class FakeCodec:
    """Reads the whole stream and 'encodes' it to half its size.

    Streams starting with b"CORRUPT" fail like an undecodable image.
    """

    output_extension = ".avif"

    def encode(self, stream):
        data = stream.read()
        if data.startswith(b"CORRUPT"):
            raise ValueError("cannot identify image file")
        return EncodedImage(data=data[: len(data) // 2], width=1, height=1, format="avif")


@pytest.fixture
def fake_codec():
    return FakeCodec()

# ============================================================================
# File System Fixtures
# ============================================================================

@pytest.fixture
def image_tree(tmp_path):
    """a.jpg (1000 B) and b.png (2000 B) convert, c.txt is ignored, d.jpeg is corrupt."""
    root = tmp_path / "images"
    root.mkdir()
    (root / "a.jpg").write_bytes(b"j" * 1000)
    sub = root / "sub"
    sub.mkdir()
    (sub / "b.png").write_bytes(b"p" * 2000)
    (root / "c.txt").write_bytes(b"t" * 500)
    (root / "d.jpeg").write_bytes(b"CORRUPT" + b"\x00" * 93)
    return root


def make_image_bytes(fmt: str, size=(64, 48), mode="RGB") -> bytes:
    """Encodes a small gradient image with Pillow."""
    image = Image.new(mode, size)
    for x in range(size[0]):
        for y in range(size[1]):
            value = (x * 4 + y * 2) % 256
            if mode == "RGBA":
                image.putpixel((x, y), (value, 255 - value, (x * y) % 256, 200))
            elif mode == "RGB":
                image.putpixel((x, y), (value, 255 - value, (x * y) % 256))
            else:
                image.putpixel((x, y), value)
    buffer = io.BytesIO()
    image.save(buffer, fmt)
    return buffer.getvalue()


@pytest.fixture
def image_factory():
    return make_image_bytes


@pytest.fixture
def real_images(tmp_path):
    """Real JPEG/PNG/GIF files plus a corrupt one."""
    root = tmp_path / "real"
    root.mkdir()
    (root / "photo.jpg").write_bytes(make_image_bytes("JPEG"))
    (root / "alpha.png").write_bytes(make_image_bytes("PNG", mode="RGBA"))
    (root / "palette.gif").write_bytes(make_image_bytes("GIF", mode="L"))
    (root / "broken.jpeg").write_bytes(b"\xff\xd8\xff\xe0 definitely not a jpeg")
    return root


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
