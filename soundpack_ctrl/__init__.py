"""soundpack-ctrl - sound pack installer for coding-assistant notifications.

Python implementation providing:
* Structural and content validation of pack ZIP archives
* Staged, sanitized and atomically published pack installs
* Registry manifests, downloads and scheduled updates
* Thin CLI wrapper (`soundpack-ctrl`)

Public helpers exported here are considered part of the semi-stable API. The
CLI remains the primary user interface.
"""

from ._version import __version__
from .common.config import SoundPackSettings  # noqa: F401
from .common.logging_config import configure_logging  # noqa: F401
from .core.installer import DownloadTask, InstallResult, PackInstaller  # noqa: F401
from .core.library import PackLibrary, PackSnapshot  # noqa: F401
from .core.structure import ValidationReport, Violation, ViolationKind  # noqa: F401
from .core.validation import validate_archive  # noqa: F401

__all__ = [
	"__version__",
	"configure_logging",
	"DownloadTask",
	"InstallResult",
	"PackInstaller",
	"PackLibrary",
	"PackSnapshot",
	"SoundPackSettings",
	"ValidationReport",
	"Violation",
	"ViolationKind",
	"validate_archive",
]
