#!/usr/bin/env python3
"""
Blackfish Chat Relay Client - desktop window

Three panes side by side (banner card, chat, user list) over an input line.
Networking runs on a QThread with its own asyncio loop; received lines
reach the GUI thread through Qt signals.
"""

import asyncio
import sys
import threading
from datetime import datetime
from typing import List, Optional

# PyQt6 imports
from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QHBoxLayout, QVBoxLayout,
    QLabel, QLineEdit, QListWidget, QTextEdit, QPushButton
)
from PyQt6.QtCore import Qt, QThread, pyqtSignal

from client.chat.chat_client import ChatClient
from common.constants import QUIT_COMMAND


BANNER_TEXT = (
    "####################\n"
    "#     BLACKFISH    #\n"
    "#   CLI CHAT APP   #\n"
    "####################"
)


class BannerWidget(QLabel):
    """Left column card."""

    def __init__(self):
        super().__init__(BANNER_TEXT)
        self.setAlignment(Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignHCenter)
        self.setStyleSheet("""
            QLabel {
                color: #2ECC71;
                font-family: monospace;
                font-weight: bold;
                border: 1px solid #34495E;
                padding: 8px;
            }
        """)


class ChatWidget(QWidget):
    """Chat transcript with the input line below it."""

    message_sent = pyqtSignal(str)  # raw input text

    def __init__(self, username: str = ''):
        super().__init__()
        self.username = username
        self.setup_ui()

    def setup_ui(self):
        """Setup chat interface UI."""
        layout = QVBoxLayout()
        layout.setSpacing(5)
        layout.setContentsMargins(5, 5, 5, 5)

        self.chat_text = QTextEdit()
        self.chat_text.setReadOnly(True)
        self.chat_text.setStyleSheet("""
            QTextEdit {
                background-color: #2C2C2C;
                color: #ECF0F1;
                border: 1px solid #34495E;
                font-family: monospace;
            }
        """)
        layout.addWidget(self.chat_text)

        input_layout = QHBoxLayout()
        self.prompt_label = QLabel(f"[{self.username}] -->")
        input_layout.addWidget(self.prompt_label)

        self.input_field = QLineEdit()
        self.input_field.setPlaceholderText("Message, or @name message for private")
        self.input_field.returnPressed.connect(self.send_message)
        input_layout.addWidget(self.input_field)

        send_btn = QPushButton("Send")
        send_btn.clicked.connect(self.send_message)
        input_layout.addWidget(send_btn)

        layout.addLayout(input_layout)
        self.setLayout(layout)

    def send_message(self):
        """Emit the typed text and clear the input."""
        text = self.input_field.text()
        if text.strip():
            self.message_sent.emit(text)
            self.input_field.clear()

    def add_line(self, line: str):
        """Append a received line to the transcript."""
        self.chat_text.append(line)
        scrollbar = self.chat_text.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())

    def add_system_line(self, message: str):
        timestamp = datetime.now().strftime("%H:%M")
        self.add_line(f"[{timestamp}] {message}")

    def lines(self) -> List[str]:
        """Transcript contents, one entry per line."""
        text = self.chat_text.toPlainText()
        return text.split('\n') if text else []


class UserListWidget(QWidget):
    """Right column with the connected users."""

    def __init__(self):
        super().__init__()
        layout = QVBoxLayout()
        layout.setContentsMargins(5, 5, 5, 5)
        layout.addWidget(QLabel("Users:"))
        self.list_widget = QListWidget()
        layout.addWidget(self.list_widget)
        self.setLayout(layout)

    def set_users(self, users: List[str]):
        self.list_widget.clear()
        for name in users:
            self.list_widget.addItem(name)

    def users(self) -> List[str]:
        return [self.list_widget.item(i).text() for i in range(self.list_widget.count())]


class NetworkThread(QThread):
    """Thread for handling network communication."""

    line_received = pyqtSignal(str)
    users_updated = pyqtSignal(list)
    connected = pyqtSignal()
    disconnected = pyqtSignal()
    connection_failed = pyqtSignal()

    def __init__(self, host: str, port: int, username: str):
        super().__init__()
        self.chat_client = ChatClient(host, port, username)
        self.chat_client.set_message_handler(self.line_received.emit)
        self.chat_client.set_user_list_handler(self.users_updated.emit)
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.loop_ready = threading.Event()

    def run(self):
        """Run network loop."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self.loop_ready.set()
        try:
            self.loop.run_until_complete(self._connect_and_listen())
        finally:
            self.loop.close()

    async def _connect_and_listen(self):
        if not await self.chat_client.connect():
            self.connection_failed.emit()
            return
        self.connected.emit()
        try:
            await self.chat_client.listen_for_messages()
        finally:
            await self.chat_client.close()
            self.disconnected.emit()

    def send_text(self, text: str):
        """Send text from the GUI thread."""
        if not self.loop_ready.wait(timeout=5.0) or self.loop is None or self.loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.chat_client.send_text(text), self.loop)

    def stop(self):
        """Close the connection; the listen loop then ends."""
        if self.loop is not None and not self.loop.is_closed():
            asyncio.run_coroutine_threadsafe(self.chat_client.close(), self.loop)


class ClientMainWindow(QMainWindow):
    """Main application window."""

    def __init__(self, server_host: str, server_port: int, username: str):
        super().__init__()
        self.server_host = server_host
        self.server_port = server_port
        self.username = username
        self.network_thread: Optional[NetworkThread] = None
        self.setup_ui()

    def setup_ui(self):
        """Setup the main window UI."""
        self.setWindowTitle(f"Blackfish Chat - {self.username}")
        self.setGeometry(100, 100, 1000, 600)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)

        main_layout = QHBoxLayout()
        main_layout.setContentsMargins(10, 10, 10, 10)

        self.banner = BannerWidget()
        main_layout.addWidget(self.banner, stretch=1)

        self.chat_widget = ChatWidget(self.username)
        self.chat_widget.message_sent.connect(self.on_send_message)
        main_layout.addWidget(self.chat_widget, stretch=4)

        self.user_list = UserListWidget()
        main_layout.addWidget(self.user_list, stretch=1)

        central_widget.setLayout(main_layout)
        self.apply_dark_theme()

    def apply_dark_theme(self):
        """Apply dark theme styling."""
        self.setStyleSheet("""
            QMainWindow {
                background-color: #1A1A1A;
            }
            QWidget {
                background-color: #1A1A1A;
                color: #ECF0F1;
            }
        """)

    def connect_to_server(self):
        """Start the network thread."""
        self.network_thread = NetworkThread(self.server_host, self.server_port, self.username)
        self.network_thread.line_received.connect(self.chat_widget.add_line)
        self.network_thread.users_updated.connect(self.user_list.set_users)
        self.network_thread.connected.connect(self.on_connected)
        self.network_thread.disconnected.connect(self.on_disconnected)
        self.network_thread.connection_failed.connect(self.on_connection_failed)
        self.network_thread.start()

    def on_connected(self):
        self.chat_widget.add_system_line(f"connected to {self.server_host}:{self.server_port}")

    def on_disconnected(self):
        self.chat_widget.add_system_line("*** disconnected from server")

    def on_connection_failed(self):
        self.chat_widget.add_system_line(f"*** could not connect to {self.server_host}:{self.server_port}")

    def on_send_message(self, text: str):
        """Send typed text, or quit on /quit."""
        if text.strip() == QUIT_COMMAND:
            self.close()
            return
        if self.network_thread is not None:
            self.network_thread.send_text(text)

    def closeEvent(self, event):
        if self.network_thread is not None:
            self.network_thread.stop()
            self.network_thread.wait(3000)
        super().closeEvent(event)


def run_gui_client(username: str, server_host: str, server_port: int) -> int:
    """Run the desktop client and return its exit status."""
    app = QApplication.instance() or QApplication(sys.argv)
    window = ClientMainWindow(server_host, server_port, username)
    window.show()
    window.connect_to_server()
    return app.exec()
