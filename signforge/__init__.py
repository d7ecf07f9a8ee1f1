"""signforge: concurrent build, sign and publish for function folders.

Each folder under a source root is compiled, zipped, signed by a code
signing service, republished to a durable key with its source fingerprint,
and activated on the function of the same name. Unchanged folders are
skipped; one folder failing never stops the others.
"""

__version__ = "0.1.0"
__description__ = "Concurrent build, sign and publish pipeline for function folders"

from signforge.core.dispatcher import Dispatcher
from signforge.core.pipeline import FolderPipeline
from signforge.models.config import DeployConfig

__all__ = ["Dispatcher", "DeployConfig", "FolderPipeline", "__version__"]
