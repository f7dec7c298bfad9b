"""sqlc2proto code generator."""

from .config import Config as Config
from .config import ConfigError as ConfigError
from .config import load_config as load_config
from .descriptors import FieldDescriptor as FieldDescriptor
from .descriptors import IncludesSet as IncludesSet
from .descriptors import MessageDescriptor as MessageDescriptor
from .descriptors import QueryDescriptor as QueryDescriptor
from .descriptors import QueryKind as QueryKind
from .descriptors import ServiceDescriptor as ServiceDescriptor
from .descriptors import ServiceMethod as ServiceMethod
from .includes import IncludesError as IncludesError
from .output import Artifact as Artifact
from .output import EmitError as EmitError
from .parser import *
from .pipeline import generate as generate
from .typemap import TypeMappingConfig as TypeMappingConfig
from .types import *
