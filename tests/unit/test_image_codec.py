import io
import pytest
from PIL import Image, features
from unittest.mock import patch
from avify.config.models import CodecConfig
from avify.domain.errors import ConfigurationError
from avify.infrastructure.image_codec import ImageCodec

requires_avif = pytest.mark.skipif(not features.check("avif"), reason="Pillow built without AVIF")
requires_webp = pytest.mark.skipif(not features.check("webp"), reason="Pillow built without WebP")


@requires_webp
def test_webp_encode_jpeg(image_factory):
    codec = ImageCodec(CodecConfig(format="webp", quality=60))
    encoded = codec.encode(io.BytesIO(image_factory("JPEG")))

    assert codec.output_extension == ".webp"
    assert encoded.format == "webp"
    assert (encoded.width, encoded.height) == (64, 48)
    with Image.open(io.BytesIO(encoded.data)) as result:
        assert result.format == "WEBP"
        assert result.size == (64, 48)


@requires_webp
def test_webp_keeps_alpha(image_factory):
    codec = ImageCodec(CodecConfig(format="webp", lossless=True))
    encoded = codec.encode(io.BytesIO(image_factory("PNG", mode="RGBA")))

    with Image.open(io.BytesIO(encoded.data)) as result:
        assert result.mode == "RGBA"


@requires_webp
def test_webp_converts_grayscale_gif(image_factory):
    codec = ImageCodec(CodecConfig(format="webp"))
    encoded = codec.encode(io.BytesIO(image_factory("GIF", mode="L")))

    with Image.open(io.BytesIO(encoded.data)) as result:
        assert result.format == "WEBP"


@requires_avif
def test_avif_encode_png(image_factory):
    codec = ImageCodec(CodecConfig())
    encoded = codec.encode(io.BytesIO(image_factory("PNG")))

    assert codec.output_extension == ".avif"
    assert encoded.format == "avif"
    with Image.open(io.BytesIO(encoded.data)) as result:
        assert result.format == "AVIF"
        assert result.size == (64, 48)


@requires_avif
def test_avif_save_options_follow_config():
    codec = ImageCodec(CodecConfig(quality=55, effort=7))
    image = Image.new("RGB", (4, 4))
    assert codec._save_options(image) == {"quality": 55, "speed": 3}

    lossless = ImageCodec(CodecConfig(lossless=True, effort=0))
    assert lossless._save_options(image) == {"quality": 100, "subsampling": "4:4:4", "speed": 10}


@requires_webp
def test_metadata_copied_unless_stripped():
    image = Image.new("RGB", (4, 4))
    image.info["icc_profile"] = b"icc-bytes"
    image.info["exif"] = b"Exif\x00\x00data"

    kept = ImageCodec(CodecConfig(format="webp"))._save_options(image)
    stripped = ImageCodec(CodecConfig(format="webp", strip_metadata=True))._save_options(image)

    assert kept["icc_profile"] == b"icc-bytes"
    assert kept["exif"] == b"Exif\x00\x00data"
    assert "icc_profile" not in stripped
    assert "exif" not in stripped


@requires_webp
def test_webp_effort_capped_to_method_range():
    options = ImageCodec(CodecConfig(format="webp", effort=9))._save_options(Image.new("RGB", (2, 2)))
    assert options["method"] == 6


@requires_webp
def test_corrupt_input_raises():
    codec = ImageCodec(CodecConfig(format="webp"))
    with pytest.raises(Exception):
        codec.encode(io.BytesIO(b"\xff\xd8\xff\xe0 definitely not a jpeg"))


def test_missing_encoder_is_configuration_error():
    with patch("avify.infrastructure.image_codec.features.check", return_value=False):
        with pytest.raises(ConfigurationError, match="AVIF"):
            ImageCodec(CodecConfig(format="avif"))
