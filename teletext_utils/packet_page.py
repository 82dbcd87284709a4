"""
PacketPage - generic storage for the packets of one teletext (sub)page.

A page holds up to 26 display packets (X/0 to X/25) and four families of
16 designation packets (X/26 to X/29, designation codes 0-15). Every
payload is 40 bytes and is only allocated once written.

Hosts that need to know about changes register a PageObserver. The page
never depends on its observers for anything it stores or returns.
"""

from typing import Dict, List, Optional

from teletext_utils.models import CONTROL_BIT_COUNT, ControlBit, PacketCoding, PageFunction

PACKET_SIZE = 40
DISPLAY_PACKETS = 26
DESIGNATION_FAMILIES = (26, 27, 28, 29)
DESIGNATION_CODES = 16


class PageObserver:
    """
    Optional change listener for a page.

    Override any of the methods; the defaults do nothing.
    """

    def packet_changed(
        self, page: "PacketPage", packet_number: int, designation_code: Optional[int]
    ) -> None:
        pass

    def control_bit_changed(self, page: "PacketPage", bit: ControlBit) -> None:
        pass

    def enhancements_changed(self, page: "PacketPage") -> None:
        pass


def normalise_packet(payload: bytes) -> bytes:
    """Pad with 0x00 or truncate a payload to exactly 40 bytes."""
    return bytes(payload[:PACKET_SIZE]).ljust(PACKET_SIZE, b"\x00")


class PacketPage:
    """Raw packet storage plus the 11 header control bits."""

    def __init__(self):
        self._display_packets: List[Optional[bytes]] = [None] * DISPLAY_PACKETS
        self._designation_packets: Dict[int, List[Optional[bytes]]] = {
            family: [None] * DESIGNATION_CODES for family in DESIGNATION_FAMILIES
        }
        self._control_bits: List[bool] = [False] * CONTROL_BIT_COUNT
        self._observers: List[PageObserver] = []

    # --------------------------------------------------------------------- #
    # Observers
    # --------------------------------------------------------------------- #
    def add_observer(self, observer: PageObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: PageObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify_packet(self, packet_number: int, designation_code: Optional[int]) -> None:
        for observer in self._observers:
            observer.packet_changed(self, packet_number, designation_code)

    def _notify_control_bit(self, bit: ControlBit) -> None:
        for observer in self._observers:
            observer.control_bit_changed(self, bit)

    def _notify_enhancements(self) -> None:
        for observer in self._observers:
            observer.enhancements_changed(self)

    # --------------------------------------------------------------------- #
    # Page identity
    # --------------------------------------------------------------------- #
    def page_function(self) -> PageFunction:
        return PageFunction.UNKNOWN

    def packet_coding(self) -> PacketCoding:
        return PacketCoding.UNKNOWN

    # --------------------------------------------------------------------- #
    # Packet access
    # --------------------------------------------------------------------- #
    def _slots(self, packet_number: int, designation_code: Optional[int]) -> List[Optional[bytes]]:
        """Return the storage list holding a packet, validating its address."""
        if 0 <= packet_number < DISPLAY_PACKETS:
            return self._display_packets
        if packet_number in self._designation_packets:
            if designation_code is None or not 0 <= designation_code < DESIGNATION_CODES:
                raise ValueError(
                    f"Packet X/{packet_number} needs a designation code 0-15, got {designation_code}"
                )
            return self._designation_packets[packet_number]
        raise ValueError(f"Packet number must be 0-29, got {packet_number}")

    def _slot_index(self, packet_number: int, designation_code: Optional[int]) -> int:
        return packet_number if packet_number < DISPLAY_PACKETS else designation_code

    def packet(self, packet_number: int, designation_code: Optional[int] = None) -> bytes:
        """
        Return the 40 byte payload of a packet, or b"" if it was never set.

        Args:
            packet_number: 0-25 for display packets, 26-29 for designation packets
            designation_code: 0-15, required for packets 26-29
        """
        slots = self._slots(packet_number, designation_code)
        stored = slots[self._slot_index(packet_number, designation_code)]
        return stored if stored is not None else b""

    def set_packet(
        self, packet_number: int, payload: bytes, designation_code: Optional[int] = None
    ) -> bool:
        """Store a payload, allocating the packet on first write."""
        slots = self._slots(packet_number, designation_code)
        slots[self._slot_index(packet_number, designation_code)] = normalise_packet(payload)
        self._notify_packet(packet_number, designation_code)
        return True

    def packet_exists(self, packet_number: int, designation_code: Optional[int] = None) -> bool:
        slots = self._slots(packet_number, designation_code)
        return slots[self._slot_index(packet_number, designation_code)] is not None

    def clear_packet(self, packet_number: int, designation_code: Optional[int] = None) -> bool:
        slots = self._slots(packet_number, designation_code)
        index = self._slot_index(packet_number, designation_code)
        if slots[index] is not None:
            slots[index] = None
            self._notify_packet(packet_number, designation_code)
        return True

    def clear_all_packets(self) -> None:
        for y in range(DISPLAY_PACKETS):
            self.clear_packet(y)
        for family in DESIGNATION_FAMILIES:
            for d in range(DESIGNATION_CODES):
                self.clear_packet(family, d)

    def is_empty(self) -> bool:
        if any(p is not None for p in self._display_packets):
            return False
        return not any(
            p is not None for slots in self._designation_packets.values() for p in slots
        )

    # --------------------------------------------------------------------- #
    # Control bits
    # --------------------------------------------------------------------- #
    def control_bit(self, bit: int) -> bool:
        return self._control_bits[ControlBit(bit)]

    def set_control_bit(self, bit: int, active: bool) -> bool:
        self._control_bits[ControlBit(bit)] = bool(active)
        self._notify_control_bit(ControlBit(bit))
        return True
