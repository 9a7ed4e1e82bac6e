"""buildmatrix - fan one package description out into per-platform packages, dev shells and images."""

from .context import Context as Context
from .descriptor import ArtifactDescriptor as ArtifactDescriptor
from .descriptor import descriptor as descriptor
from .devshell import DevShell as DevShell
from .devshell import DevShellDescriptor as DevShellDescriptor
from .devshell import PlatformPredicate as PlatformPredicate
from .environment import Environment as Environment
from .environment import Tool as Tool
from .errors import ConfigurationError as ConfigurationError
from .hcl import load_matrix as load_matrix
from .image import ContainerImage as ContainerImage
from .image import ImageDescriptor as ImageDescriptor
from .manifest import Manifest as Manifest
from .matrix import Matrix as Matrix
from .matrix import for_all_platforms as for_all_platforms
from .package import PackageArtifact as PackageArtifact
from .package import PackageDescriptor as PackageDescriptor
from .platforms import Platform as Platform
from .platforms import PlatformSet as PlatformSet
from .project import BuildMatrix as BuildMatrix
from .project import Outputs as Outputs
