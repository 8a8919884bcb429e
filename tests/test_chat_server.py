#!/usr/bin/env python3
"""
Integration tests for the relay server over real TCP connections.

Covers:
- Handshake failures never reaching the registry
- Join/leave announcements and user list updates
- Disconnect cleanup with a single departure announcement
- Capacity boundary with explicit rejection
- Supervised shutdown
- The alice/bob end-to-end scenario
"""

import asyncio
import tempfile
import unittest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from server.chat.chat_server import ConnectionHandler, ConnectionState
from server.chat.registry import Participant
from server.main_server import RelayServer
from server.utils.config import ServerConfig
from fakes import FakeWriter, StalledCloseWriter, read_line, read_until, wait_for_condition


class RelayServerTestCase(unittest.IsolatedAsyncioTestCase):
    """Starts a server on an ephemeral port for each test."""

    max_clients = 8
    idle_timeout = None

    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        config = ServerConfig(host='127.0.0.1', port=0, max_clients=self.max_clients,
                              logs_dir=self.tmp.name, idle_timeout=self.idle_timeout)
        self.server = RelayServer(config)
        await self.server.start()
        self.connections = []

    async def asyncTearDown(self):
        for _, writer in self.connections:
            writer.close()
        await self.server.stop()
        self.tmp.cleanup()

    async def connect(self, name: str = None, wait_joined: bool = True):
        """Open a client connection, optionally sending the name and awaiting the join."""
        reader, writer = await asyncio.open_connection('127.0.0.1', self.server.port)
        self.connections.append((reader, writer))
        if name is not None:
            writer.write(name.encode('utf-8') + b'\n')
            await writer.drain()
            if wait_joined:
                await read_until(reader, f"server: *** {name} joined")
        return reader, writer

    async def send(self, writer, line: str):
        writer.write(line.encode('utf-8') + b'\n')
        await writer.drain()

    def log_lines(self):
        return self.server.chat_log.path.read_text(encoding='utf-8').splitlines()


class TestHandshake(RelayServerTestCase):

    async def test_chat_log_is_created_at_start(self):
        self.assertTrue(self.server.chat_log.path.exists())

    async def test_join_sends_user_list_then_announcement(self):
        reader, _ = await self.connect("alice", wait_joined=False)
        self.assertEqual(await read_line(reader), "\x01USERS:alice")
        self.assertEqual(await read_line(reader), "server: *** alice joined")
        self.assertEqual(self.server.registry.count(), 1)

    async def test_immediate_disconnect_never_joins(self):
        watcher, _ = await self.connect("watcher")
        _, writer = await self.connect()
        writer.close()

        await asyncio.sleep(0.1)
        self.assertEqual(self.server.registry.count(), 1)
        await self.send(self.connections[0][1], "ping")
        self.assertEqual(await read_line(watcher), "watcher: ping")

    async def test_blank_name_is_rejected(self):
        reader, writer = await self.connect()
        await self.send(writer, "   ")
        self.assertIsNone(await read_line(reader))
        self.assertEqual(self.server.registry.count(), 0)

    async def test_name_is_stripped_and_truncated(self):
        long_name = "x" * 40
        reader, _ = await self.connect(f"  {long_name}  ", wait_joined=False)
        expected = "x" * self.server.config.max_name_length
        await read_until(reader, f"server: *** {expected} joined")

    async def test_name_with_control_character_is_rejected(self):
        await self.connect("alice")
        reader, writer = await self.connect()
        await self.send(writer, "\x01USERS:ghost1")
        self.assertIsNone(await read_line(reader))
        self.assertEqual(await self.server.registry.names(), ["alice"])

    async def test_name_with_list_separator_is_rejected(self):
        reader, writer = await self.connect()
        await self.send(writer, "bob,carol")
        self.assertIsNone(await read_line(reader))
        self.assertEqual(self.server.registry.count(), 0)

    async def test_name_and_first_message_in_one_packet(self):
        reader, writer = await self.connect()
        writer.write(b"alice\nhello all\n")
        await writer.drain()
        lines = await read_until(reader, "alice: hello all")
        self.assertIn("server: *** alice joined", lines)

    async def test_oversized_handshake_is_dropped(self):
        reader, writer = await self.connect()
        writer.write(b"n" * (self.server.config.max_frame_size + 10) + b"\n")
        await writer.drain()
        self.assertIsNone(await read_line(reader))
        self.assertEqual(self.server.registry.count(), 0)


class TestSession(RelayServerTestCase):

    async def test_end_to_end_alice_and_bob(self):
        alice_r, alice_w = await self.connect("alice")
        bob_r, bob_w = await self.connect("bob")
        await read_until(alice_r, "server: *** bob joined")

        await self.send(alice_w, "hello all")
        await read_until(alice_r, "alice: hello all")
        await read_until(bob_r, "alice: hello all")

        await self.send(bob_w, "@alice hi")
        await read_until(alice_r, "(private) bob -> alice: hi")
        await read_until(bob_r, "(private) bob -> alice: hi")

        alice_w.close()
        seen = await read_until(bob_r, "server: *** alice left")
        if "\x01USERS:bob" not in seen:
            seen += await read_until(bob_r, "\x01USERS:bob")
        self.assertIn("\x01USERS:bob", seen)

        await wait_for_condition(lambda: self.log_lines()[-1].endswith("server: *** alice left"))
        log = self.log_lines()
        self.assertEqual(sum(line.endswith("(private) bob -> alice: hi") for line in log), 1)
        self.assertEqual(sum(line.endswith("alice: hello all") for line in log), 1)

    async def test_private_miss_only_echoes(self):
        alice_r, alice_w = await self.connect("alice")
        bob_r, bob_w = await self.connect("bob")

        await self.send(alice_w, "@carol hello")
        await read_until(alice_r, "(private) alice -> carol: hello")

        await self.send(alice_w, "marker")
        lines = await read_until(bob_r, "alice: marker")
        self.assertNotIn("(private) alice -> carol: hello", lines)

    async def test_messages_from_one_connection_stay_in_order(self):
        alice_r, alice_w = await self.connect("alice")
        bob_r, _ = await self.connect("bob")

        for i in range(20):
            alice_w.write(f"msg {i}\n".encode())
        await alice_w.drain()

        lines = await read_until(bob_r, "alice: msg 19")
        received = [line for line in lines if line.startswith("alice: msg")]
        self.assertEqual(received, [f"alice: msg {i}" for i in range(20)])

    async def test_abrupt_disconnect_announces_once(self):
        alice_r, alice_w = await self.connect("alice")
        bob_r, _ = await self.connect("bob")
        _, carol_w = await self.connect("carol")

        carol_w.transport.abort()

        await read_until(alice_r, "server: *** carol left")
        await wait_for_condition(lambda: self.server.registry.count() == 2)
        self.assertEqual(await self.server.registry.names(), ["alice", "bob"])

        await self.send(alice_w, "after")
        bob_lines = await read_until(bob_r, "alice: after")
        self.assertEqual(bob_lines.count("server: *** carol left"), 1)
        alice_lines = await read_until(alice_r, "alice: after")
        self.assertNotIn("server: *** carol left", alice_lines)

    async def test_oversized_chat_frame_closes_only_that_connection(self):
        alice_r, alice_w = await self.connect("alice")
        bob_r, bob_w = await self.connect("bob")

        bob_w.write(b"y" * (self.server.config.max_frame_size + 100) + b"\n")
        await bob_w.drain()

        await read_until(alice_r, "server: *** bob left")
        await self.send(alice_w, "still fine")
        await read_until(alice_r, "alice: still fine")

    async def test_handler_closes_only_once(self):
        _, writer = await self.connect("alice")
        participant = (await self.server.registry.snapshot())[0]
        handler = ConnectionHandler(participant.reader, FakeWriter(), self.server.registry,
                                    self.server.broadcaster, self.server.router, self.server.config)
        handler.participant = participant
        handler.state = ConnectionState.ACTIVE

        await handler.close()
        await handler.close()

        self.assertEqual(handler.state, ConnectionState.CLOSED)
        left = [line for line in self.log_lines() if line.endswith("*** alice left")]
        self.assertEqual(len(left), 1)

    async def test_cancel_while_closing_still_leaves(self):
        writer = StalledCloseWriter()
        participant = Participant(display_name="alice", writer=writer)
        await self.server.registry.join(participant)
        handler = ConnectionHandler(asyncio.StreamReader(), writer, self.server.registry,
                                    self.server.broadcaster, self.server.router, self.server.config)
        handler.participant = participant
        handler.state = ConnectionState.ACTIVE

        task = asyncio.create_task(handler.close())
        await wait_for_condition(lambda: writer.closed)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertEqual(self.server.registry.count(), 0)
        self.assertEqual(handler.state, ConnectionState.CLOSED)


class TestCapacity(RelayServerTestCase):

    max_clients = 2

    async def test_full_registry_rejects_then_recovers(self):
        alice_r, alice_w = await self.connect("alice")
        bob_r, bob_w = await self.connect("bob")

        extra_r, _ = await self.connect("extra", wait_joined=False)
        self.assertEqual(await read_line(extra_r), "server: *** server full")
        self.assertIsNone(await read_line(extra_r))
        self.assertEqual(await self.server.registry.names(), ["alice", "bob"])

        await self.send(alice_w, "check")
        lines = await read_until(bob_r, "alice: check")
        self.assertNotIn("server: *** extra joined", lines)

        bob_w.close()
        await read_until(alice_r, "server: *** bob left")
        await wait_for_condition(lambda: self.server.registry.count() == 1)

        late_r, _ = await self.connect("late")
        self.assertEqual(await self.server.registry.names(), ["alice", "late"])


class TestIdleTimeout(RelayServerTestCase):

    idle_timeout = 0.2

    async def test_idle_client_is_disconnected(self):
        reader, _ = await self.connect("sleepy")
        self.assertIsNone(await read_line(reader, timeout=2.0))
        await wait_for_condition(lambda: self.server.registry.count() == 0)


class TestShutdown(RelayServerTestCase):

    async def test_stop_cancels_live_handlers(self):
        alice_r, _ = await self.connect("alice")
        bob_r, _ = await self.connect("bob")
        await wait_for_condition(lambda: len(self.server.handler_tasks) == 2)

        await self.server.stop()

        self.assertEqual(self.server.handler_tasks, set())
        self.assertEqual(self.server.registry.count(), 0)
        for reader in (alice_r, bob_r):
            while await read_line(reader) is not None:
                pass


if __name__ == '__main__':
    unittest.main()
