"""A small teaching Unix: user tools, a shell parser, paged-memory and virtio models, and mkfs."""

__version__ = "0.1.0"