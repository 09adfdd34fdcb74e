"""Binary asset hosting and upload lifecycle."""

from contextpack.assets.gemini_files import GeminiFileHost
from contextpack.assets.uploads import BinaryAssetUploadManager, scratch_file

__all__ = ["BinaryAssetUploadManager", "GeminiFileHost", "scratch_file"]
