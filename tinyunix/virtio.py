"""Driver for a legacy virtio block device, with a simulated device behind it."""

from __future__ import annotations

import struct
import threading
from dataclasses import dataclass, field

BSIZE = 1024
SECTOR_SIZE = 512
PGSIZE = 4096

# Descriptors in the queue; must be a power of two.
NUM = 8

VIRTIO_MAGIC = 0x74726976
VIRTIO_VENDOR = 0x554D4551
VIRTIO_DEVICE_BLOCK = 2

# Status register bits.
VIRTIO_CONFIG_S_ACKNOWLEDGE = 1
VIRTIO_CONFIG_S_DRIVER = 2
VIRTIO_CONFIG_S_DRIVER_OK = 4
VIRTIO_CONFIG_S_FEATURES_OK = 8

# Device feature bits.
VIRTIO_BLK_F_RO = 5
VIRTIO_BLK_F_SCSI = 7
VIRTIO_BLK_F_CONFIG_WCE = 11
VIRTIO_BLK_F_MQ = 12
VIRTIO_F_ANY_LAYOUT = 27
VIRTIO_RING_F_INDIRECT_DESC = 28
VIRTIO_RING_F_EVENT_IDX = 29

VRING_DESC_F_NEXT = 1
VRING_DESC_F_WRITE = 2

VIRTIO_BLK_T_IN = 0
VIRTIO_BLK_T_OUT = 1

_BLK_S_OK = 0
_BLK_S_IOERR = 1
_BLK_S_UNSUPP = 2

_OUTHDR = struct.Struct("<IIQ")

_REJECTED_FEATURES = (
    VIRTIO_BLK_F_RO,
    VIRTIO_BLK_F_SCSI,
    VIRTIO_BLK_F_CONFIG_WCE,
    VIRTIO_BLK_F_MQ,
    VIRTIO_F_ANY_LAYOUT,
    VIRTIO_RING_F_EVENT_IDX,
    VIRTIO_RING_F_INDIRECT_DESC,
)


class VirtioError(Exception):
    """The device is missing, misbehaving, or the driver state is corrupt."""


@dataclass
class Buf:
    """A block buffer handed to the disk driver."""

    dev: int = 0
    blockno: int = 0
    valid: bool = False
    disk: bool = False
    refcnt: int = 0
    data: bytearray = field(default_factory=lambda: bytearray(BSIZE))


@dataclass
class VRingDesc:
    """One queue descriptor; ``addr`` is the buffer the device reads or writes."""

    addr: bytearray | None = None
    len: int = 0
    flags: int = 0
    next: int = 0


@dataclass
class _UsedElem:
    id: int = 0
    len: int = 0


@dataclass
class _UsedArea:
    flags: int = 0
    id: int = 0
    elems: list = field(default_factory=lambda: [_UsedElem() for _ in range(NUM)])


@dataclass
class _Info:
    buf: Buf | None = None
    status: bytearray = field(default_factory=lambda: bytearray(1))


def negotiate_features(features):
    """Clear the feature bits this driver does not support."""
    for bit in _REJECTED_FEATURES:
        features &= ~(1 << bit)
    return features


class BlockDevice:
    """A simulated virtio block device backed by an in-memory disk image."""

    def __init__(self, image, queue_max=NUM):
        self.image = image if isinstance(image, bytearray) else bytearray(image)
        self.magic_value = VIRTIO_MAGIC
        self.version = 1
        self.device_id = VIRTIO_DEVICE_BLOCK
        self.vendor_id = VIRTIO_VENDOR
        self.device_features = 0xFFFFFFFF
        self.driver_features = 0
        self.status = 0
        self.guest_page_size = 0
        self.queue_sel = 0
        self.queue_num_max = queue_max
        self.queue_num = 0
        self._last_avail = 0

    def _execute(self, disk, head):
        hdr_desc = disk.desc[head]
        if not hdr_desc.flags & VRING_DESC_F_NEXT:
            raise VirtioError("malformed descriptor chain")
        data_desc = disk.desc[hdr_desc.next]
        if not data_desc.flags & VRING_DESC_F_NEXT:
            raise VirtioError("malformed descriptor chain")
        status_desc = disk.desc[data_desc.next]
        if not status_desc.flags & VRING_DESC_F_WRITE:
            raise VirtioError("status descriptor is not writable")

        kind, _reserved, sector = _OUTHDR.unpack(bytes(hdr_desc.addr[:_OUTHDR.size]))
        offset = sector * SECTOR_SIZE
        length = data_desc.len
        if offset + length > len(self.image):
            status = _BLK_S_IOERR
        elif kind == VIRTIO_BLK_T_OUT:
            self.image[offset:offset + length] = data_desc.addr[:length]
            status = _BLK_S_OK
        elif kind == VIRTIO_BLK_T_IN:
            if not data_desc.flags & VRING_DESC_F_WRITE:
                raise VirtioError("read into a device-readable buffer")
            data_desc.addr[:length] = self.image[offset:offset + length]
            status = _BLK_S_OK
        else:
            status = _BLK_S_UNSUPP
        status_desc.addr[0] = status
        return length + 1

    def process(self, disk):
        """Complete every request posted in ``disk``'s avail ring; return how many."""
        done = 0
        while self._last_avail != disk.avail[1]:
            head = disk.avail[2 + self._last_avail % NUM]
            written = self._execute(disk, head)
            slot = disk.used.elems[disk.used.id % NUM]
            slot.id = head
            slot.len = written
            disk.used.id = (disk.used.id + 1) & 0xFFFF
            self._last_avail = (self._last_avail + 1) & 0xFFFF
            done += 1
        return done

    def notify(self, disk):
        """Handle a queue notification, raising the completion interrupt if needed."""
        if self.process(disk):
            disk.intr()


class VirtioDisk:
    """The driver: sets up queue 0 and performs block reads and writes."""

    def __init__(self, device):
        self.device = device
        self._cond = threading.Condition(threading.RLock())

        if (
            device.magic_value != VIRTIO_MAGIC
            or device.version != 1
            or device.device_id != VIRTIO_DEVICE_BLOCK
            or device.vendor_id != VIRTIO_VENDOR
        ):
            raise VirtioError("could not find virtio disk")

        status = VIRTIO_CONFIG_S_ACKNOWLEDGE
        device.status = status
        status |= VIRTIO_CONFIG_S_DRIVER
        device.status = status

        device.driver_features = negotiate_features(device.device_features)

        status |= VIRTIO_CONFIG_S_FEATURES_OK
        device.status = status
        status |= VIRTIO_CONFIG_S_DRIVER_OK
        device.status = status

        device.guest_page_size = PGSIZE

        device.queue_sel = 0
        queue_max = device.queue_num_max
        if queue_max == 0:
            raise VirtioError("virtio disk has no queue 0")
        if queue_max < NUM:
            raise VirtioError("virtio disk max queue too short")
        device.queue_num = NUM

        self.desc = [VRingDesc() for _ in range(NUM)]
        self.avail = [0] * (NUM + 2)
        self.used = _UsedArea()
        self.free = [True] * NUM
        self.used_idx = 0
        self.info = [_Info() for _ in range(NUM)]

    def alloc_desc(self):
        """Claim a free descriptor and return its index, or None if all are busy."""
        with self._cond:
            for i, is_free in enumerate(self.free):
                if is_free:
                    self.free[i] = False
                    return i
            return None

    def free_desc(self, i):
        """Return descriptor ``i`` to the free set and wake any waiters."""
        with self._cond:
            if not 0 <= i < NUM:
                raise VirtioError("virtio_disk_intr 1")
            if self.free[i]:
                raise VirtioError("virtio_disk_intr 2")
            self.desc[i].addr = None
            self.free[i] = True
            self._cond.notify_all()

    def free_chain(self, i):
        """Free the chain of descriptors starting at ``i``."""
        with self._cond:
            while True:
                self.free_desc(i)
                desc = self.desc[i]
                if not desc.flags & VRING_DESC_F_NEXT:
                    return
                i = desc.next

    def alloc3_desc(self):
        """Claim three descriptors; return their indices, or None leaving none claimed."""
        with self._cond:
            idx = []
            for _ in range(3):
                i = self.alloc_desc()
                if i is None:
                    for j in idx:
                        self.free_desc(j)
                    return None
                idx.append(i)
            return idx

    def rw(self, buf, write):
        """Write ``buf`` to disk, or read it from disk, waiting until the device is done."""
        sector = buf.blockno * (BSIZE // SECTOR_SIZE)
        with self._cond:
            while (idx := self.alloc3_desc()) is None:
                self._cond.wait()

            kind = VIRTIO_BLK_T_OUT if write else VIRTIO_BLK_T_IN
            header = bytearray(_OUTHDR.pack(kind, 0, sector))
            self.desc[idx[0]] = VRingDesc(header, len(header), VRING_DESC_F_NEXT, idx[1])

            data_flags = 0 if write else VRING_DESC_F_WRITE
            self.desc[idx[1]] = VRingDesc(
                buf.data, BSIZE, data_flags | VRING_DESC_F_NEXT, idx[2]
            )

            info = self.info[idx[0]]
            info.status = bytearray(1)
            self.desc[idx[2]] = VRingDesc(info.status, 1, VRING_DESC_F_WRITE, 0)

            buf.disk = True
            info.buf = buf

            self.avail[2 + self.avail[1] % NUM] = idx[0]
            self.avail[1] = (self.avail[1] + 1) & 0xFFFF

            self.device.notify(self)

            while buf.disk:
                self._cond.wait()

            info.buf = None
            self.free_chain(idx[0])

    def intr(self):
        """Handle a completion interrupt: mark finished buffers and wake their owners."""
        with self._cond:
            while self.used_idx % NUM != self.used.id % NUM:
                head = self.used.elems[self.used_idx].id
                info = self.info[head]
                if info.status[0] != 0:
                    raise VirtioError("virtio_disk_intr status")
                info.buf.disk = False
                self._cond.notify_all()
                self.used_idx = (self.used_idx + 1) % NUM