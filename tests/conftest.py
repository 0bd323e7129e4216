"""Anvil nodes for tests that need a real JSON-RPC endpoint.

``anvil_local`` is a bare node for settler storage layouts;
``anvil_fork`` forks mainnet (RPC_URL) for reads against deployed Uniswap
contracts. Both yield ``(web3, rpc_url)`` and share one lifecycle helper.
"""

import os
import shutil
import signal
import socket
import subprocess
import time
from contextlib import contextmanager

import pytest
from web3 import Web3

DEFAULT_FORK_BLOCK = 19_000_000
STARTUP_TIMEOUT = 15.0


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _wait_for_rpc(proc: subprocess.Popen, w3: Web3, timeout: float) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if proc.poll() is not None:
            raise RuntimeError(f"anvil exited with status {proc.returncode}")
        try:
            if w3.is_connected():
                return
        except OSError:
            pass
        time.sleep(0.2)
    raise RuntimeError(f"anvil did not answer within {timeout}s")


@contextmanager
def anvil_node(*args: str, timeout: float = STARTUP_TIMEOUT):
    """Run ``anvil *args`` on a free port for the duration of the block."""
    if shutil.which("anvil") is None:
        pytest.skip("anvil not found on PATH, install Foundry")
    port = _free_port()
    url = f"http://127.0.0.1:{port}"
    proc = subprocess.Popen(
        ["anvil", "--port", str(port), "--silent", *args],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    try:
        w3 = Web3(Web3.HTTPProvider(url))
        _wait_for_rpc(proc, w3, timeout)
        yield w3, url
    finally:
        proc.send_signal(signal.SIGTERM)
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            proc.kill()


@pytest.fixture(scope="session")
def anvil_local():
    with anvil_node() as node:
        yield node


@pytest.fixture(scope="session")
def anvil_fork():
    """Mainnet fork at FORK_BLOCK (default 19,000,000); skipped without RPC_URL."""
    rpc_url = os.environ.get("RPC_URL")
    if not rpc_url:
        pytest.skip("RPC_URL not set, skipping mainnet fork tests")
    block = os.environ.get("FORK_BLOCK", str(DEFAULT_FORK_BLOCK))
    with anvil_node("--fork-url", rpc_url, "--fork-block-number", block) as node:
        yield node
