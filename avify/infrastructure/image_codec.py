import io
import logging
from typing import Any, BinaryIO, Dict
from PIL import Image, features
from pydantic import BaseModel
from avify.config.models import CodecConfig
from avify.domain.errors import ConfigurationError

# format -> (Pillow save format, feature name, output extension)
OUTPUT_FORMATS = {
    "avif": ("AVIF", "avif", ".avif"),
    "webp": ("WEBP", "webp", ".webp"),
}


class EncodedImage(BaseModel):
    data: bytes
    width: int
    height: int
    format: str


class ImageCodec:
    """Wrapper around Pillow that decodes an image stream and re-encodes it.

    Parameters are fixed for the whole run. Animated inputs contribute their
    first frame only.
    """

    def __init__(self, config: CodecConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)
        pillow_format, feature, extension = OUTPUT_FORMATS[config.format]
        if not features.check(feature):
            raise ConfigurationError(
                f"This Pillow build cannot encode {config.format.upper()} "
                f"(install a Pillow release with {feature} support)"
            )
        self.pillow_format = pillow_format
        self.output_extension = extension

    def _save_options(self, image: Image.Image) -> Dict[str, Any]:
        cfg = self.config
        options: Dict[str, Any] = {}
        if cfg.format == "avif":
            # Pillow's speed runs the other way round from effort
            options["speed"] = 10 - cfg.effort
            if cfg.lossless:
                options["quality"] = 100
                options["subsampling"] = "4:4:4"
            else:
                options["quality"] = cfg.quality
        else:
            options["quality"] = cfg.quality
            options["method"] = min(6, cfg.effort)
            options["lossless"] = cfg.lossless

        if not cfg.strip_metadata:
            exif = image.info.get("exif")
            if exif:
                options["exif"] = exif
            icc_profile = image.info.get("icc_profile")
            if icc_profile:
                options["icc_profile"] = icc_profile
        return options

    @staticmethod
    def _normalize_mode(image: Image.Image) -> Image.Image:
        if image.mode in ("RGB", "RGBA"):
            return image
        if "A" in image.getbands() or "transparency" in image.info:
            return image.convert("RGBA")
        return image.convert("RGB")

    def encode(self, stream: BinaryIO) -> EncodedImage:
        """Decodes the stream and returns the encoded bytes. Raises on any decode/encode error."""
        with Image.open(stream) as source:
            source.load()
            options = self._save_options(source)
            image = self._normalize_mode(source)

            buffer = io.BytesIO()
            image.save(buffer, self.pillow_format, **options)
            width, height = image.size

        return EncodedImage(data=buffer.getvalue(), width=width, height=height, format=self.config.format)
