"""Discovery of include metadata published by upstream units."""

import logging
from typing import List, Mapping

from ..metadata import MetadataDecodeError, MetadataVersionError, decode, parse_channel_variable
from ..output import log_detail
from .build_context import Dependency

logger = logging.getLogger(__name__)


def collect_dependencies(env: Mapping[str, str]) -> List[Dependency]:
    """Decode every DEP_<NAME>_ZANBIL_INCLUDE entry of the side channel.

    Args:
        env: Mapping holding the channel variables (os.environ in a real build)

    Returns:
        One Dependency per channel variable, sorted by name

    Raises:
        MetadataDecodeError: If any entry fails to decode. A corrupt upstream
            view would make the include path unreliable, so this is fatal.
    """
    dependencies = []
    for var, value in env.items():
        dep_name = parse_channel_variable(var)
        if dep_name is None:
            continue
        try:
            metadata = decode(value)
        except MetadataVersionError as e:
            raise MetadataVersionError(e.version, source=var) from e
        except MetadataDecodeError as e:
            raise MetadataDecodeError(f"{var}: {e}") from e
        logger.debug("Decoded %s: %s", var, metadata)
        dependencies.append(Dependency(name=dep_name, metadata=metadata))

    dependencies.sort(key=lambda dep: dep.name)
    for dep in dependencies:
        dirs = ", ".join(str(p) for p in dep.metadata.include_dirs) or "(no include dirs)"
        log_detail(f"{dep.name} -> {dirs}")
    return dependencies
