"""
Unit tests for the Selective Repeat ARQ protocol.
"""

import dataclasses
import random

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sr_arq.config import NOTINUSE, PAYLOAD_SIZE
from sr_arq.arq.checksum import compute_checksum, is_corrupted
from sr_arq.arq.environment import Entity
from sr_arq.arq.packet import Packet, make_payload
from sr_arq.arq.protocol import SelectiveRepeat
from sr_arq.arq.receiver import SRReceiver
from sr_arq.arq.sender import SRSender
from sr_arq.arq.seqnum import SequenceSpace
from sr_arq.arq.timer import TimerManager, TimerState
from sr_arq.utils.logger import SimulationLogger, LogLevel
from sr_arq.utils.metrics import MetricsCollector


QUIET = SimulationLogger(name="Test", level=LogLevel.CRITICAL)


class RecordingEnvironment:
    """Protocol environment that records every call."""

    def __init__(self):
        self.sent = {Entity.A: [], Entity.B: []}
        self.delivered = []
        self.timer_running = {Entity.A: False, Entity.B: False}
        self.timer_starts = []

    def send_to_channel(self, entity, packet):
        self.sent[entity].append(packet)

    def deliver_to_application(self, entity, payload):
        self.delivered.append(payload)

    def start_timer(self, entity, duration):
        self.timer_running[entity] = True
        self.timer_starts.append((entity, duration))

    def stop_timer(self, entity):
        self.timer_running[entity] = False


def message(i):
    """Distinct 20-byte message for index i."""
    return f"message {i:03d}".encode()


def ack(acknum):
    return Packet.create_ack_packet(0, acknum)


def data(seqnum, i=None):
    return Packet.create_data_packet(seqnum, message(seqnum if i is None else i))


def make_sender(window_size=6, timeout=16.0):
    env = RecordingEnvironment()
    return SRSender(env, window_size=window_size, timeout=timeout, logger=QUIET), env


def make_receiver(window_size=6):
    env = RecordingEnvironment()
    return SRReceiver(env, window_size=window_size, logger=QUIET), env


class TestChecksum:
    """Tests for the checksum validator."""

    def test_checksum_formula(self):
        """Checksum is seqnum + acknum + sum of payload bytes."""
        packet = Packet(seqnum=3, acknum=NOTINUSE, payload=make_payload(b"ab"))

        assert compute_checksum(packet) == 3 - 1 + ord('a') + ord('b')

    def test_fresh_packet_not_corrupted(self):
        """Packets built by the factories carry a valid checksum."""
        assert not is_corrupted(data(4))
        assert not is_corrupted(ack(4))

    @pytest.mark.parametrize("field", ["seqnum", "acknum", "checksum"])
    def test_header_tamper_detected(self, field):
        """Changing any header field is detected."""
        packet = data(2)
        tampered = dataclasses.replace(packet, **{field: getattr(packet, field) + 1})

        assert is_corrupted(tampered)

    def test_payload_byte_flip_detected(self):
        """Flipping one payload byte is detected."""
        packet = data(2)
        payload = bytearray(packet.payload)
        payload[5] ^= 0xFF
        tampered = dataclasses.replace(packet, payload=bytes(payload))

        assert tampered.is_corrupted()

    def test_cancelling_changes_not_detected(self):
        """Known weak point: offsetting changes leave the sum intact."""
        packet = data(2)
        payload = bytearray(packet.payload)
        payload[0] += 1
        payload[1] -= 1
        tampered = dataclasses.replace(packet, payload=bytes(payload))

        assert not is_corrupted(tampered)


class TestPacket:
    """Tests for Packet class."""

    def test_data_packet_creation(self):
        """Test creating a data packet."""
        packet = Packet.create_data_packet(5, b"hello")

        assert packet.seqnum == 5
        assert packet.acknum == NOTINUSE
        assert not packet.is_ack
        assert packet.payload == b"hello" + b"\x00" * (PAYLOAD_SIZE - 5)

    def test_ack_packet_creation(self):
        """Test creating an ACK packet."""
        packet = Packet.create_ack_packet(1, 7)

        assert packet.is_ack
        assert packet.seqnum == 1
        assert packet.acknum == 7
        assert packet.payload == bytes(PAYLOAD_SIZE)

    def test_payload_too_large(self):
        """Messages longer than the payload are rejected."""
        with pytest.raises(ValueError):
            Packet.create_data_packet(0, b"x" * (PAYLOAD_SIZE + 1))

    def test_payload_wrong_type(self):
        """Non-bytes payloads are rejected."""
        with pytest.raises(ValueError):
            make_payload("text")
        with pytest.raises(ValueError):
            Packet(seqnum=0, payload="x" * PAYLOAD_SIZE)

    def test_packet_is_immutable(self):
        """Packets cannot be modified after construction."""
        packet = data(0)

        with pytest.raises(dataclasses.FrozenInstanceError):
            packet.seqnum = 1

    def test_serialization_deserialization(self):
        """Test packet serialization and deserialization."""
        original = Packet.create_ack_packet(1, 11)

        serialized = original.serialize()
        restored = Packet.deserialize(serialized)

        assert len(serialized) == Packet.WIRE_SIZE == 12 + PAYLOAD_SIZE
        assert restored == original
        assert not restored.is_corrupted()

    def test_wire_corruption_detected(self):
        """A flipped byte on the wire shows up as corruption."""
        serialized = bytearray(data(3).serialize())
        serialized[-1] ^= 0x01

        assert Packet.deserialize(bytes(serialized)).is_corrupted()

    def test_deserialize_wrong_length(self):
        """Short input is rejected."""
        with pytest.raises(ValueError):
            Packet.deserialize(b"\x00" * 10)


class TestSequenceSpace:
    """Tests for sequence number arithmetic."""

    def test_modulus_is_twice_window(self):
        """Sequence space is 2W."""
        assert SequenceSpace(6).modulus == 12
        assert SequenceSpace(1).modulus == 2

    def test_next_wraps(self):
        """Successor wraps at the modulus."""
        space = SequenceSpace(6)

        assert space.next(5) == 6
        assert space.next(11) == 0

    def test_offset_across_wrap(self):
        """Offsets are measured forward from the base."""
        space = SequenceSpace(6)

        assert space.offset(1, 10) == 3
        assert space.offset(10, 10) == 0
        assert space.offset(9, 10) == 11

    def test_in_window(self):
        """Only the W numbers starting at the base are in the window."""
        space = SequenceSpace(6)

        assert [s for s in range(12) if space.in_window(s, 10)] == [0, 1, 2, 3, 10, 11]

    def test_invalid_window(self):
        """Window size must be positive."""
        with pytest.raises(ValueError):
            SequenceSpace(0)


class TestSRSender:
    """Tests for Selective Repeat Sender."""

    def test_send_first_packet(self):
        """First send transmits seq 0 and starts the timer."""
        sender, env = make_sender()

        assert sender.output(message(0))

        assert [p.seqnum for p in env.sent[Entity.A]] == [0]
        assert env.sent[Entity.A][0].acknum == NOTINUSE
        assert env.timer_running[Entity.A]
        assert sender.timer_seq == 0
        assert sender.window_count == 1

    def test_timer_started_once(self):
        """Later sends don't re-arm a running timer."""
        sender, env = make_sender()

        for i in range(3):
            sender.output(message(i))

        assert env.timer_starts == [(Entity.A, 16.0)]
        assert sender.timer_seq == 0

    def test_window_full(self):
        """A send with a full window is rejected without state change."""
        sender, env = make_sender(window_size=6)
        for i in range(6):
            assert sender.output(message(i))

        before = sender.get_window_state()
        assert not sender.output(message(6))

        assert sender.get_window_state() == before
        assert len(env.sent[Entity.A]) == 6
        assert sender.metrics.window_full_rejections == 1

    def test_corrupted_ack_ignored(self):
        """Corrupted ACKs change nothing."""
        sender, env = make_sender()
        sender.output(message(0))
        bad = dataclasses.replace(ack(0), checksum=ack(0).checksum + 1)

        assert not sender.input(bad)

        assert sender.window_count == 1
        assert env.timer_running[Entity.A]
        assert sender.metrics.corrupted_acks == 1

    def test_out_of_order_ack(self):
        """An ACK behind an unacked packet doesn't slide the window."""
        sender, env = make_sender()
        for i in range(3):
            sender.output(message(i))

        assert sender.input(ack(1))

        assert sender.window_count == 3
        assert sender.timer_seq == 0
        assert sender.get_window_state()['acked'] == [False, True, False]

    def test_slide_past_acked_and_retarget_timer(self):
        """Acking the oldest slides past later acked packets and moves the timer."""
        sender, env = make_sender()
        for i in range(3):
            sender.output(message(i))
        sender.input(ack(1))

        assert sender.input(ack(0))

        assert sender.outstanding() == [2]
        assert sender.timer_seq == 2
        assert env.timer_running[Entity.A]

    def test_last_ack_stops_timer(self):
        """Timer stops once the window empties."""
        sender, env = make_sender()
        sender.output(message(0))

        sender.input(ack(0))

        assert sender.window_count == 0
        assert sender.timer_seq is None
        assert not env.timer_running[Entity.A]

    def test_duplicate_ack(self):
        """A second ACK for the same packet is a no-op."""
        sender, env = make_sender()
        sender.output(message(0))
        sender.output(message(1))
        sender.input(ack(1))

        assert not sender.input(ack(1))
        assert sender.metrics.duplicate_acks == 1
        assert sender.outstanding() == [0, 1]

    def test_unmatched_ack(self):
        """ACKs for sequence numbers not in the window are ignored."""
        sender, env = make_sender()
        sender.output(message(0))

        assert not sender.input(ack(5))
        assert sender.window_count == 1

    def test_timeout_retransmits_single_packet(self):
        """Only the timer's packet is resent on timeout."""
        sender, env = make_sender()
        for i in range(3):
            sender.output(message(i))

        packet = sender.timer_interrupt()

        assert packet.seqnum == 0
        assert [p.seqnum for p in env.sent[Entity.A]] == [0, 1, 2, 0]
        assert env.sent[Entity.A][3] == env.sent[Entity.A][0]
        assert len(env.timer_starts) == 2
        assert sender.metrics.retransmissions == 1

    def test_timeout_on_empty_window(self):
        """A stray expiry with nothing outstanding sends nothing."""
        sender, env = make_sender()

        assert sender.timer_interrupt() is None
        assert env.sent[Entity.A] == []

    def test_sequence_numbers_wrap(self):
        """Sequence numbers cycle through 2W values."""
        sender, env = make_sender(window_size=2)

        for i in range(10):
            sender.output(message(i))
            sender.input(ack(env.sent[Entity.A][-1].seqnum))

        assert [p.seqnum for p in env.sent[Entity.A]] == [0, 1, 2, 3, 0, 1, 2, 3, 0, 1]

    def test_window_progress(self):
        """Acking a full window admits exactly W new sends."""
        sender, env = make_sender(window_size=6)
        for i in range(6):
            sender.output(message(i))
        for seq in range(6):
            sender.input(ack(seq))

        accepted = [sender.output(message(i)) for i in range(6, 13)]

        assert accepted == [True] * 6 + [False]
        assert sender.outstanding() == [6, 7, 8, 9, 10, 11]

    def test_init_resets(self):
        """init() empties the window."""
        sender, env = make_sender()
        for i in range(4):
            sender.output(message(i))

        sender.init()

        assert sender.window_count == 0
        assert sender.next_seq == 0
        assert sender.timer_seq is None

    def test_invalid_timeout(self):
        """Timeout must be positive."""
        with pytest.raises(ValueError):
            SRSender(RecordingEnvironment(), timeout=0, logger=QUIET)

    def test_timer_invariant_under_random_events(self):
        """Timer runs iff packets are outstanding, and tracks the oldest unacked one."""
        sender, env = make_sender(window_size=4)
        rng = random.Random(7)

        for step in range(2000):
            action = rng.random()
            if action < 0.4:
                sender.output(message(step % 100))
            elif action < 0.9:
                sender.input(ack(rng.randrange(8)))
            elif sender.window_count:
                sender.timer_interrupt()

            assert env.timer_running[Entity.A] == (sender.window_count > 0)
            if sender.window_count:
                assert sender.timer_seq == sender.outstanding()[0]
                assert not sender.acked[sender.window_first]


class TestSRReceiver:
    """Tests for Selective Repeat Receiver."""

    def test_receive_in_order(self):
        """Test receiving packets in order."""
        receiver, env = make_receiver()

        for i in range(3):
            receiver.input(data(i))

        assert env.delivered == [make_payload(message(i)) for i in range(3)]
        assert [a.acknum for a in env.sent[Entity.B]] == [0, 1, 2]
        assert receiver.rcv_base == 3

    def test_receive_out_of_order(self):
        """Out-of-order packets wait for the gap to fill."""
        receiver, env = make_receiver()

        receiver.input(data(2))
        assert env.delivered == []
        assert receiver.buffered() == [2]

        receiver.input(data(0))
        assert len(env.delivered) == 1

        receiver.input(data(1))
        assert env.delivered == [make_payload(message(i)) for i in range(3)]
        assert receiver.buffered() == []

    def test_corrupted_packet_dropped(self):
        """Corrupted packets get no ACK and no delivery."""
        receiver, env = make_receiver()
        bad = dataclasses.replace(data(0), seqnum=1)

        assert receiver.input(bad) is None

        assert env.sent[Entity.B] == []
        assert env.delivered == []
        assert receiver.metrics.corrupted_packets == 1

    def test_ack_generation(self):
        """Each ACK carries the data seqnum and a valid checksum."""
        receiver, env = make_receiver()

        ack_packet = receiver.input(data(4))

        assert ack_packet.acknum == 4
        assert ack_packet.is_ack
        assert not ack_packet.is_corrupted()

    def test_ack_seq_alternates(self):
        """ACK seqnum is an independent 0/1 counter."""
        receiver, env = make_receiver()

        for seq in [0, 3, 1, 1]:
            receiver.input(data(seq))

        assert [a.seqnum for a in env.sent[Entity.B]] == [0, 1, 0, 1]
        assert [a.acknum for a in env.sent[Entity.B]] == [0, 3, 1, 1]

    def test_duplicate_of_buffered_packet(self):
        """A buffered packet received again is ACKed but stored once."""
        receiver, env = make_receiver()

        receiver.input(data(1))
        receiver.input(data(1))
        receiver.input(data(0))

        assert len(env.delivered) == 2
        assert len(env.sent[Entity.B]) == 3
        assert receiver.metrics.duplicate_packets == 1

    def test_packet_beyond_window_acked_not_buffered(self):
        """Packets outside the receive window are still ACKed."""
        receiver, env = make_receiver(window_size=6)

        ack_packet = receiver.input(data(7))

        assert ack_packet.acknum == 7
        assert receiver.buffered() == []
        assert receiver.rcv_base == 0

    def test_window_edge_after_wrap(self):
        """The last in-window number is buffered; the next one is not."""
        receiver, env = make_receiver(window_size=6)
        for i in range(10):
            receiver.input(data(i % 12, i))
        assert receiver.rcv_base == 10

        receiver.input(data(3, 15))
        receiver.input(data(4, 16))

        assert receiver.buffered() == [3]
        assert receiver.metrics.duplicate_packets == 1
        assert [a.acknum for a in env.sent[Entity.B]][-2:] == [3, 4]

    def test_wraparound_delivery(self):
        """Delivery continues across sequence number wrap."""
        receiver, env = make_receiver(window_size=6)

        for i in range(30):
            receiver.input(data(i % 12, i))

        assert env.delivered == [make_payload(message(i)) for i in range(30)]
        assert receiver.rcv_base == 30 % 12

    def test_exactly_once_with_duplicates_and_reordering(self):
        """Shuffled arrivals with repeats deliver each payload once, in order."""
        receiver, env = make_receiver(window_size=6)
        rng = random.Random(3)

        for start in range(0, 36, 6):
            arrivals = [i for i in range(start, start + 6) for _ in range(rng.randint(1, 3))]
            rng.shuffle(arrivals)
            for i in arrivals:
                receiver.input(data(i % 12, i))

        assert env.delivered == [make_payload(message(i)) for i in range(36)]

    def test_init_resets(self):
        """init() empties the window."""
        receiver, env = make_receiver()
        receiver.input(data(2))

        receiver.init()

        assert receiver.rcv_base == 0
        assert receiver.buffered() == []
        assert receiver.ack_seq == 0


class TestTimerManager:
    """Tests for per-entity timer management."""

    def test_timer_start(self):
        """Test starting a timer."""
        manager = TimerManager()

        manager.start_timer(Entity.A, current_time=0.0, timeout=16.0)

        assert manager.is_running(Entity.A)
        assert manager.get_active_count() == 1
        assert manager.get_next_expiry() == 16.0

    def test_timer_expiry(self):
        """Test timer expiry detection."""
        manager = TimerManager()
        manager.start_timer(Entity.A, 0.0, 1.0)

        assert manager.check_timeouts(0.5) == []
        assert manager.check_timeouts(1.5) == [Entity.A]
        assert manager.timers[Entity.A].state == TimerState.EXPIRED
        assert manager.get_next_expiry() is None

    def test_restart_rearms_deadline(self):
        """Starting a running timer moves its deadline."""
        manager = TimerManager()
        manager.start_timer(Entity.A, 0.0, 10.0)
        manager.start_timer(Entity.A, 5.0, 10.0)

        assert manager.check_timeouts(12.0) == []
        assert manager.check_timeouts(15.0) == [Entity.A]

    def test_timer_stop(self):
        """A stopped timer never fires, and stopping twice is harmless."""
        manager = TimerManager()
        manager.start_timer(Entity.A, 0.0, 1.0)

        manager.stop_timer(Entity.A)
        manager.stop_timer(Entity.A)

        assert manager.check_timeouts(1.5) == []
        assert not manager.is_running(Entity.A)

    def test_entities_independent(self):
        """Each entity has its own timer."""
        manager = TimerManager()
        manager.start_timer(Entity.A, 0.0, 2.0)
        manager.start_timer(Entity.B, 0.0, 1.0)

        manager.stop_timer(Entity.B)

        assert manager.check_timeouts(3.0) == [Entity.A]

    def test_invalid_duration(self):
        """Timer duration must be positive."""
        with pytest.raises(ValueError):
            TimerManager().start_timer(Entity.A, 0.0, 0.0)


class TestSelectiveRepeat:
    """Tests for the entity-dispatching entry points."""

    def test_shared_metrics(self):
        """Both entities report to one metrics sink."""
        metrics = MetricsCollector()
        protocol = SelectiveRepeat(RecordingEnvironment(), metrics=metrics, logger=QUIET)

        assert protocol.sender.metrics is metrics
        assert protocol.receiver.metrics is metrics

    def test_receiver_cannot_send(self):
        """Entity B does not originate data."""
        protocol = SelectiveRepeat(RecordingEnvironment(), logger=QUIET)

        with pytest.raises(ValueError):
            protocol.on_application_message(Entity.B, message(0))

    def test_receiver_has_no_timer(self):
        """Entity B has no timer to expire."""
        protocol = SelectiveRepeat(RecordingEnvironment(), logger=QUIET)

        with pytest.raises(ValueError):
            protocol.on_timer_expiry(Entity.B)

    def test_init_per_entity(self):
        """init() resets only the named entity."""
        protocol = SelectiveRepeat(RecordingEnvironment(), logger=QUIET)
        protocol.on_application_message(Entity.A, message(0))
        protocol.on_packet_arrival(Entity.B, data(0))

        protocol.init(Entity.A)

        assert protocol.sender.window_count == 0
        assert protocol.receiver.rcv_base == 1


class TestScenarios:
    """End-to-end exchanges with W=6, SEQSPACE=12, packets routed by hand."""

    def setup_method(self):
        self.env = RecordingEnvironment()
        self.protocol = SelectiveRepeat(self.env, window_size=6, logger=QUIET)

    def sent_by(self, entity):
        return self.env.sent[entity]

    def test_clean_transfer(self):
        """Three sends, no loss: three packets, three ACKs, window empties."""
        for i in range(3):
            self.protocol.on_application_message(Entity.A, message(i))
        for packet in list(self.sent_by(Entity.A)):
            self.protocol.on_packet_arrival(Entity.B, packet)
        for ack_packet in list(self.sent_by(Entity.B)):
            self.protocol.on_packet_arrival(Entity.A, ack_packet)

        assert [p.seqnum for p in self.sent_by(Entity.A)] == [0, 1, 2]
        assert [a.acknum for a in self.sent_by(Entity.B)] == [0, 1, 2]
        assert self.protocol.sender.window_count == 0
        assert not self.env.timer_running[Entity.A]

    def test_lost_packet_retransmitted_alone(self):
        """Packet 2 lost: after ACKs 0 and 1 the timeout resends only packet 2."""
        for i in range(3):
            self.protocol.on_application_message(Entity.A, message(i))
        for packet in self.sent_by(Entity.A)[:2]:
            self.protocol.on_packet_arrival(Entity.B, packet)
        for ack_packet in list(self.sent_by(Entity.B)):
            self.protocol.on_packet_arrival(Entity.A, ack_packet)

        assert self.protocol.sender.timer_seq == 2

        self.protocol.on_timer_expiry(Entity.A)

        assert [p.seqnum for p in self.sent_by(Entity.A)] == [0, 1, 2, 2]

    def test_reordered_arrival(self):
        """Arrivals 0, 2, 1 deliver 0, then 1 and 2 together, with three ACKs."""
        for seq in [0, 2, 1]:
            self.protocol.on_packet_arrival(Entity.B, data(seq))
            if seq == 2:
                assert self.env.delivered == [make_payload(message(0))]

        assert self.env.delivered == [make_payload(message(i)) for i in range(3)]
        assert [a.acknum for a in self.sent_by(Entity.B)] == [0, 2, 1]

    def test_redelivered_packet_reacked(self):
        """A re-received delivered packet is ACKed again and not delivered twice."""
        receiver = self.protocol.receiver
        self.protocol.on_packet_arrival(Entity.B, data(0))
        before = (receiver.rcv_base, receiver.buffered(), list(receiver.received))

        self.protocol.on_packet_arrival(Entity.B, data(0))

        assert [a.acknum for a in self.sent_by(Entity.B)] == [0, 0]
        assert len(self.env.delivered) == 1
        assert (receiver.rcv_base, receiver.buffered(), list(receiver.received)) == before


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
