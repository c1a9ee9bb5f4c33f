"""Parse Go goroutine dumps and collapse duplicate stacks into buckets."""

from .aliasing import name_arguments
from .buckets import Bucket, bucketize, sort_buckets
from .config import TriageConfig, load_config
from .exceptions import ConfigError, MalformedArgumentError, StackTriageError
from .model import Arg, Args, Call, Function, Goroutine, Signature
from .parser import parse_dump
from .report import render_buckets

__all__ = [
    "__version__",
    "Arg",
    "Args",
    "Bucket",
    "Call",
    "ConfigError",
    "Function",
    "Goroutine",
    "MalformedArgumentError",
    "Signature",
    "StackTriageError",
    "TriageConfig",
    "bucketize",
    "load_config",
    "name_arguments",
    "parse_dump",
    "render_buckets",
    "sort_buckets",
]

__version__ = "0.1.0"
