"""
Enhancement triplets (X/26) and the ordered triplet list of a page.

Each triplet is an (address, mode, data) record of 6, 5 and 7 bits. An
address of 40-63 is a row triplet; 0-39 is a column triplet whose mode
gains an implicit 0x20, giving the extended mode space 0x00-0x3F.

The list recomputes the derived fields of every triplet (active position,
errors, reserved bits, object definition indices) whenever it changes.
Structural edits that must keep local object pointers valid go through
insert_triplets(), remove_triplets() and replace_triplet(), which return a
new list plus a TripletListDiff the host can use for undo or view refresh.

References:
    - ETSI EN 300 706 V1.2.1 - Enhanced Teletext specification, 12.3
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

from teletext_utils.models import ObjectSource, ObjectType, TripletError

logger = logging.getLogger(__name__)

TRIPLETS_PER_PACKET = 13
MAX_ENHANCEMENTS = 16 * TRIPLETS_PER_PACKET

# Mode and address of a termination marker
TERMINATION_MODE = 0x1F
TERMINATION_ADDRESS = 0x3F

# Neutral triplet used to pad short or corrupt X/26 data: address 41, mode 0x1E, data 0
DUMMY_TRIPLET = (41, 0x1E, 0x00)

INVALID_FIELD = 0xFF

# Column modes that place a character and so need a printable data byte
CHARACTER_MODES = frozenset([0x21, 0x22, 0x29, 0x2B, 0x2F] + list(range(0x30, 0x40)))


@dataclass
class X26Triplet:
    """
    One enhancement triplet.

    Only address, mode and data are authoritative and take part in
    equality. The remaining fields are filled in by
    X26TripletList.update_internal_data().
    """

    address: int = 0
    mode: int = 0
    data: int = 0

    active_position_row: int = field(default=-1, compare=False, repr=False)
    active_position_column: int = field(default=-1, compare=False, repr=False)
    active_position_row_1p5: int = field(default=-1, compare=False, repr=False)
    active_position_column_1p5: int = field(default=-1, compare=False, repr=False)
    active_position_1p5_differs: bool = field(default=False, compare=False, repr=False)
    error: TripletError = field(default=TripletError.NO_ERROR, compare=False, repr=False)
    reserved_mode: bool = field(default=False, compare=False, repr=False)
    reserved_data: bool = field(default=False, compare=False, repr=False)

    @classmethod
    def invalid(cls) -> "X26Triplet":
        """A placeholder for a missing or undecodable triplet slot."""
        return cls(INVALID_FIELD, INVALID_FIELD, INVALID_FIELD)

    def is_valid(self) -> bool:
        return self.address <= 0x3F and self.mode <= 0x1F and self.data <= 0x7F

    def is_termination_marker(self) -> bool:
        return self.mode == TERMINATION_MODE and self.address == TERMINATION_ADDRESS

    @property
    def mode_ext(self) -> int:
        return self.mode if self.address >= 40 else self.mode | 0x20

    @property
    def is_row_triplet(self) -> bool:
        return self.address >= 40

    # Row 24 is coded as address 40, rows 1-23 as 41-63
    @property
    def address_row(self) -> int:
        return 24 if self.address == 40 else self.address - 40

    def set_address_row(self, row: int) -> None:
        self.address = 40 if row == 24 else row + 40

    @property
    def address_column(self) -> int:
        return self.address

    def set_address_column(self, column: int) -> None:
        self.address = column

    # ------------------------------------------------------------------ #
    # Object invocation and definition fields
    # ------------------------------------------------------------------ #
    @property
    def object_source(self) -> ObjectSource:
        return ObjectSource((self.address & 0x18) >> 3)

    @property
    def object_local_designation_code(self) -> int:
        return ((self.address & 0x01) << 3) | (self.data >> 4)

    @property
    def object_local_triplet_number(self) -> int:
        return self.data & 0x0F

    @property
    def object_local_index(self) -> int:
        return self.object_local_designation_code * TRIPLETS_PER_PACKET + self.object_local_triplet_number

    def set_object_local_index(self, index: int) -> None:
        self.address = (self.address & 0x38) | (1 if index >= 8 * TRIPLETS_PER_PACKET else 0)
        self.data = (((index // TRIPLETS_PER_PACKET) & 0x07) << 4) | (index % TRIPLETS_PER_PACKET)


class ActivePosition:
    """
    Tracks where the Active Position has reached while walking triplets.

    The position may only move down the page, and only right within a row.
    -1 means "not yet determined".
    """

    def __init__(self):
        self.row = -1
        self.column = -1

    def reset(self) -> None:
        self.row = -1
        self.column = -1

    @property
    def is_deployed(self) -> bool:
        return self.row != -1

    def set_row(self, row: int) -> bool:
        if row < self.row:
            return False
        if row > self.row:
            self.row = row
            self.column = -1
        return True

    def set_column(self, column: int) -> bool:
        if column < self.column:
            return False
        if self.row == -1:
            self.row = 0
        self.column = column
        return True


@dataclass(frozen=True)
class TripletListDiff:
    """
    Description of a structural edit.

    Attributes:
        first_index: Index of the first inserted, removed or replaced triplet
        count: Number of triplets inserted, removed or replaced
        shift: Amount added to local object pointers at or after first_index
        rewritten: Indices, in the edited list, of invocations whose pointer was shifted
    """

    first_index: int
    count: int
    shift: int
    rewritten: Tuple[int, ...] = ()


class X26TripletList:
    """Ordered enhancement triplets with derived state kept up to date."""

    def __init__(self, triplets: Optional[Iterable[X26Triplet]] = None):
        self._list: List[X26Triplet] = [copy.copy(t) for t in triplets] if triplets else []
        if len(self._list) > MAX_ENHANCEMENTS:
            raise ValueError(f"At most {MAX_ENHANCEMENTS} triplets, got {len(self._list)}")
        self._objects: Tuple[List[int], List[int], List[int]] = ([], [], [])
        self.update_internal_data()

    def __len__(self) -> int:
        return len(self._list)

    def __iter__(self) -> Iterator[X26Triplet]:
        return iter(self._list)

    def __getitem__(self, index: int) -> X26Triplet:
        return self._list[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, X26TripletList):
            return self._list == other._list
        return NotImplemented

    def at(self, index: int) -> X26Triplet:
        return self._list[index]

    def is_empty(self) -> bool:
        return not self._list

    def size(self) -> int:
        return len(self._list)

    def copy(self) -> "X26TripletList":
        return X26TripletList(self._list)

    def objects(self, object_type: int) -> List[int]:
        """Indices of the object definitions of one type (see ObjectType)."""
        return list(self._objects[ObjectType(object_type)])

    # --------------------------------------------------------------------- #
    # Mutation, each followed by a full recomputation
    # --------------------------------------------------------------------- #
    def _check_room(self, count: int = 1) -> None:
        if len(self._list) + count > MAX_ENHANCEMENTS:
            raise ValueError(f"Enhancement list is limited to {MAX_ENHANCEMENTS} triplets")

    def append(self, triplet: X26Triplet) -> None:
        self._check_room()
        self._list.append(copy.copy(triplet))
        self.update_internal_data()

    def insert(self, index: int, triplet: X26Triplet) -> None:
        self._check_room()
        self._list.insert(index, copy.copy(triplet))
        self.update_internal_data()

    def remove_at(self, index: int) -> None:
        del self._list[index]
        self.update_internal_data()

    def remove_last(self) -> None:
        self._list.pop()
        self.update_internal_data()

    def replace(self, index: int, triplet: X26Triplet) -> None:
        self._list[index] = copy.copy(triplet)
        self.update_internal_data()

    def clear(self) -> None:
        self._list.clear()
        self.update_internal_data()

    # --------------------------------------------------------------------- #
    # Packet assembly
    # --------------------------------------------------------------------- #
    def packet_needed(self, designation_code: int) -> bool:
        """True if the list reaches into the triplets of this designation code."""
        return (len(self._list) + TRIPLETS_PER_PACKET - 1) // TRIPLETS_PER_PACKET > designation_code

    def to_packet(self, designation_code: int) -> bytes:
        """
        Build the 40 byte X/26 packet for one designation code.

        Byte 0 is left as 0 for the codec to fill in. After the last triplet
        of the list the termination marker is repeated to the end of the
        packet; if the list does not end in one, a marker is made up.
        """
        result = bytearray(40)
        last: Optional[X26Triplet] = None

        for t in range(TRIPLETS_PER_PACKET):
            index = designation_code * TRIPLETS_PER_PACKET + t

            if index < len(self._list):
                triplet = self._list[index]
                if not triplet.is_valid():
                    result[t * 3 + 1 : t * 3 + 4] = b"\xff\xff\xff"
                else:
                    result[t * 3 + 1 : t * 3 + 4] = _pack_triplet(triplet)

                if index == len(self._list) - 1:
                    last = copy.copy(triplet)
                    if not last.is_termination_marker():
                        last = X26Triplet(TERMINATION_ADDRESS, TERMINATION_MODE, 0x07)
            else:
                if last is None:
                    last = X26Triplet(TERMINATION_ADDRESS, TERMINATION_MODE, 0x07)
                result[t * 3 + 1 : t * 3 + 4] = _pack_triplet(last)

        return bytes(result)

    def load_packet(self, designation_code: int, packet: bytes) -> None:
        """
        Replace the triplets of one designation code from a 40 byte packet.

        Slots up to the end of this code are pre-filled with invalid
        triplets so that missing packets do not move the ones after them.
        A byte 0xFF in the mode position marks an invalid triplet.
        """
        packet = bytes(packet).ljust(40, b"\x00")
        needed = (designation_code + 1) * TRIPLETS_PER_PACKET
        while len(self._list) < needed:
            self._list.append(X26Triplet.invalid())

        triplet = X26Triplet.invalid()
        for t in range(TRIPLETS_PER_PACKET):
            b1, b2, b3 = packet[t * 3 + 1], packet[t * 3 + 2], packet[t * 3 + 3]
            if b2 == 0xFF:
                triplet = X26Triplet.invalid()
            else:
                triplet = X26Triplet(b1 & 0x3F, b2 & 0x1F, ((b3 & 0x3F) << 1) | ((b2 & 0x20) >> 5))
            self._list[designation_code * TRIPLETS_PER_PACKET + t] = triplet

        # A final termination marker (without "more follows") was repeated to fill the packet
        if triplet.is_termination_marker() and triplet.data & 0x01:
            while (
                len(self._list) > 1
                and self._list[-2].is_termination_marker()
                and self._list[-2].data == triplet.data
            ):
                self._list.pop()

        self.update_internal_data()

    # --------------------------------------------------------------------- #
    # Derived data
    # --------------------------------------------------------------------- #
    def update_internal_data(self) -> None:
        """Recompute the derived fields of every triplet, in list order."""
        for objects in self._objects:
            objects.clear()

        active_position = ActivePosition()

        # Level 2.5 and 3.5 decoding
        for i, triplet in enumerate(self._list):
            triplet.error = TripletError.NO_ERROR
            triplet.reserved_mode = False
            triplet.reserved_data = False

            if triplet.is_valid():
                if triplet.is_row_triplet:
                    self._update_row_triplet(i, triplet, active_position)
                else:
                    self._update_column_triplet(triplet, active_position)

            triplet.active_position_row = active_position.row
            triplet.active_position_column = active_position.column

        # Level 1.5 decoding
        active_position.reset()
        terminated = False
        for triplet in self._list:
            if not terminated and triplet.is_valid():
                mode = triplet.mode_ext
                if mode == 0x1F:
                    terminated = True
                elif mode == 0x04:
                    if active_position.set_row(triplet.address_row) and triplet.data < 40:
                        active_position.set_column(triplet.data)
                elif mode == 0x07:
                    if triplet.address == 0x3F and active_position.set_row(0):
                        active_position.set_column(8)
                elif mode in (0x22, 0x2F) or 0x30 <= mode <= 0x3F:
                    active_position.set_column(triplet.address_column)

            triplet.active_position_row_1p5 = active_position.row
            triplet.active_position_column_1p5 = active_position.column
            triplet.active_position_1p5_differs = (
                triplet.active_position_row != triplet.active_position_row_1p5
                or triplet.active_position_column != triplet.active_position_column_1p5
            )

    def _update_row_triplet(
        self, index: int, triplet: X26Triplet, active_position: ActivePosition
    ) -> None:
        mode = triplet.mode_ext

        if mode == 0x00:  # Full screen colour
            if active_position.is_deployed:
                triplet.error = TripletError.ACTIVE_POSITION_MOVED_UP
            if triplet.data & 0x60:
                triplet.reserved_data = True
        elif mode == 0x01:  # Full row colour
            if not active_position.set_row(triplet.address_row):
                triplet.error = TripletError.ACTIVE_POSITION_MOVED_UP
            if (triplet.data & 0x60) not in (0x00, 0x60):
                triplet.reserved_data = True
        elif mode == 0x04:  # Set Active Position
            if not active_position.set_row(triplet.address_row):
                triplet.error = TripletError.ACTIVE_POSITION_MOVED_UP
            elif triplet.data >= 40:
                triplet.reserved_data = True
            elif not active_position.set_column(triplet.data):
                triplet.error = TripletError.ACTIVE_POSITION_MOVED_LEFT
        elif mode == 0x07:  # Address row 0
            if triplet.address != 0x3F:
                triplet.reserved_data = True
            elif not active_position.set_row(0):
                triplet.error = TripletError.ACTIVE_POSITION_MOVED_UP
            else:
                active_position.set_column(8)
            if (triplet.data & 0x60) not in (0x00, 0x60):
                triplet.reserved_data = True
        elif mode == 0x10:  # Origin modifier
            if index + 1 >= len(self._list) or not 0x11 <= self._list[index + 1].mode_ext <= 0x13:
                triplet.error = TripletError.ORIGIN_MODIFIER_ALONE
        elif 0x11 <= mode <= 0x13:  # Invoke object
            if triplet.object_source == ObjectSource.LOCAL:
                target_index = triplet.object_local_index
                if (
                    triplet.object_local_triplet_number > 12
                    or target_index >= len(self._list)
                    or not 0x15 <= self._list[target_index].mode_ext <= 0x17
                ):
                    triplet.error = TripletError.INVOKE_POINTER_INVALID
                elif (mode | 0x04) != self._list[target_index].mode_ext:
                    triplet.error = TripletError.INVOKE_TYPE_MISMATCH
        elif 0x15 <= mode <= 0x17:  # Define object
            # Objects are positioned from their invocation, not from here
            active_position.reset()
            triplet.set_object_local_index(index)
            self._objects[mode - 0x15].append(index)
        elif mode == 0x18:  # DRCS mode
            if (triplet.data & 0x30) == 0x00:
                triplet.reserved_data = True
        elif 0x08 <= mode <= 0x0D or mode == 0x1F:  # PDC, termination marker
            pass
        else:
            triplet.reserved_mode = True

    def _update_column_triplet(self, triplet: X26Triplet, active_position: ActivePosition) -> None:
        mode = triplet.mode_ext

        if mode in (0x24, 0x25, 0x2A):
            triplet.reserved_mode = True
            return
        if mode == 0x26:  # PDC
            return

        if not active_position.set_column(triplet.address_column):
            triplet.error = TripletError.ACTIVE_POSITION_MOVED_LEFT

        if mode in CHARACTER_MODES and triplet.data < 0x20:
            triplet.reserved_data = True
        elif mode == 0x2D and (triplet.data & 0x3F) >= 48:  # DRCS character
            triplet.reserved_data = True


def _pack_triplet(triplet: X26Triplet) -> bytes:
    """Split a triplet into the three 6-bit packet bytes."""
    return bytes(
        (
            triplet.address & 0x3F,
            (triplet.mode & 0x1F) | ((triplet.data & 0x01) << 5),
            (triplet.data >> 1) & 0x3F,
        )
    )


# ============================================================================
# Structural edits keeping local object pointers valid
# ============================================================================


def _is_local_invocation(triplet: X26Triplet) -> bool:
    return 0x11 <= triplet.mode_ext <= 0x13 and (triplet.address & 0x18) == 0x08


def _shift_local_pointers(triplets: List[X26Triplet], first_index: int, shift: int) -> Tuple[int, ...]:
    rewritten = []
    for i, triplet in enumerate(triplets):
        if _is_local_invocation(triplet) and triplet.object_local_index >= first_index:
            triplet.set_object_local_index(triplet.object_local_index + shift)
            rewritten.append(i)
    return tuple(rewritten)


def insert_triplets(
    triplet_list: X26TripletList, index: int, triplets: Iterable[X26Triplet]
) -> Tuple[X26TripletList, TripletListDiff]:
    """
    Insert triplets before index and return the new list and its diff.

    Local object invocations pointing at index or later are moved along by
    the number of inserted triplets. The list passed in is not modified.
    """
    new_triplets = [copy.copy(t) for t in triplet_list]
    inserted = [copy.copy(t) for t in triplets]
    new_triplets[index:index] = inserted

    rewritten = _shift_local_pointers(new_triplets, index, len(inserted))
    logger.debug(
        f"Inserted {len(inserted)} triplet(s) at {index}, {len(rewritten)} pointer(s) moved"
    )
    return X26TripletList(new_triplets), TripletListDiff(index, len(inserted), len(inserted), rewritten)


def remove_triplets(
    triplet_list: X26TripletList, index: int, count: int = 1
) -> Tuple[X26TripletList, TripletListDiff]:
    """
    Remove count triplets starting at index and return the new list and its diff.

    Local object invocations pointing at index or later are moved back by
    count. The list passed in is not modified.
    """
    if index < 0 or index + count > len(triplet_list):
        raise ValueError(f"Cannot remove {count} triplet(s) at {index} from {len(triplet_list)}")

    new_triplets = [copy.copy(t) for t in triplet_list]
    del new_triplets[index : index + count]

    rewritten = _shift_local_pointers(new_triplets, index, -count)
    logger.debug(f"Removed {count} triplet(s) at {index}, {len(rewritten)} pointer(s) moved")
    return X26TripletList(new_triplets), TripletListDiff(index, count, -count, rewritten)


def replace_triplet(
    triplet_list: X26TripletList, index: int, triplet: X26Triplet
) -> Tuple[X26TripletList, TripletListDiff]:
    """Replace one triplet; no pointers move."""
    new_triplets = [copy.copy(t) for t in triplet_list]
    new_triplets[index] = copy.copy(triplet)
    return X26TripletList(new_triplets), TripletListDiff(index, 1, 0)
