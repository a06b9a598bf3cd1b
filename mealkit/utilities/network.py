"""LAN address lookup used when printing the startup banner."""
import socket


def get_local_ip() -> str:
    """Return the address the OS would use for outbound traffic, or '127.0.0.1'.

    Connecting a UDP socket sends nothing; it only selects a source interface.
    """
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        s.connect(("10.255.255.255", 1))
        ip = str(s.getsockname()[0])
    except OSError:
        ip = "127.0.0.1"
    finally:
        s.close()
    return ip
