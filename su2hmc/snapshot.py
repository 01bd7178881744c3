"""
Snapshot files
=====================================
Raw binary dump of a link field.

Layout: length_time * length_space^3 * 4 matrices in the field's flat order,
each stored as 4 complex numbers (8 little-endian float64) row by row. There
is no header. A JSON sidecar next to the file records the format version and
the extents; it is checked when present but never required for reading.
"""


import json
import logging
import os

import numpy as np
import torch

from .errors import SnapshotError
from .lattice import LatticeField


logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
FILE_DTYPE = np.dtype('<c16')
VALUES_PER_MATRIX = 4


def snapshot_filename(index: int) -> str:
    return f"gauge-links-{index:04d}.bin"


def sidecar_path(path) -> str:
    return f"{os.fspath(path)}.json"


def save_links(links: LatticeField, path, write_sidecar: bool = True):
    """Write `links` to `path` in the raw snapshot layout."""
    values = links.data.detach().cpu().contiguous().numpy().astype(FILE_DTYPE, copy=False)
    with open(path, 'wb') as f:
        f.write(values.tobytes(order='C'))
    if write_sidecar:
        metadata = {
            'format_version': FORMAT_VERSION,
            'length_time': links.length_time,
            'length_space': links.length_space,
            'dtype': FILE_DTYPE.str,
        }
        with open(sidecar_path(path), 'w') as f:
            json.dump(metadata, f, indent=2)
    logger.debug("Saved %s (%d bytes)", path, values.nbytes)


def _check_sidecar(path, length_space: int, length_time: int):
    meta_path = sidecar_path(path)
    if not os.path.exists(meta_path):
        return
    with open(meta_path) as f:
        metadata = json.load(f)
    version = metadata.get('format_version')
    if version != FORMAT_VERSION:
        raise SnapshotError(f"{path}: unsupported snapshot format version {version!r}")
    stored = (metadata.get('length_time'), metadata.get('length_space'))
    if stored != (length_time, length_space):
        raise SnapshotError(
            f"{path}: written for length_time={stored[0]}, length_space={stored[1]}, "
            f"expected length_time={length_time}, length_space={length_space}"
        )


def load_links(path, length_space: int, length_time: int,
               device: torch.device = None) -> LatticeField:
    """Read a snapshot written by `save_links` (or a header-less raw dump)."""
    _check_sidecar(path, length_space, length_time)
    links = LatticeField(length_space, length_time, device=device)
    values = np.fromfile(path, dtype=FILE_DTYPE)
    expected = links.size() * VALUES_PER_MATRIX
    if values.size != expected:
        raise SnapshotError(
            f"{path}: holds {values.size} complex values, expected {expected} "
            f"for a {length_time}x{length_space}^3 lattice"
        )
    array = values.astype(np.complex128).reshape(*links.shape, 2, 2)
    links.data = torch.from_numpy(array).to(links.data.device)
    return links
