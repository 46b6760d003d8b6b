import socket, select
from typing import Optional

from dnslib import A, DNSError, DNSRecord, QTYPE, RR


def build_reply(data: bytes, answer_ip: str) -> Optional[bytes]:
    """
    Answer every A query with answer_ip. Other query types get an empty
    NOERROR reply. Returns None for packets that do not parse.
    """
    try:
        request = DNSRecord.parse(data)
    except DNSError:
        return None

    reply = request.reply()
    if request.q.qtype == QTYPE.A:
        reply.add_answer(RR(request.q.qname, QTYPE.A, rdata=A(answer_ip), ttl=60))
    return reply.pack()


class WildcardDNS:
    """Non-blocking wildcard responder, driven by poll() from the main loop."""

    def __init__(self, answer_ip: str, host: str = "0.0.0.0", port: int = 53):
        self.answer_ip = answer_ip
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind((host, port))
        self.sock.setblocking(False)

    def poll(self) -> int:
        """Answer every datagram already queued. Returns how many were answered."""
        answered = 0
        while True:
            r, _, _ = select.select([self.sock], [], [], 0)
            if not r:
                return answered
            try:
                data, addr = self.sock.recvfrom(512)
            except BlockingIOError:
                return answered
            except OSError as e:
                print(f"DNS receive error: {e}", flush=True)
                return answered

            out = build_reply(data, self.answer_ip)
            if out is None:
                print(f"Dropping malformed DNS packet from {addr[0]}", flush=True)
                continue
            try:
                self.sock.sendto(out, addr)
                answered += 1
            except OSError as e:
                print(f"DNS reply to {addr} failed: {e}", flush=True)

    def close(self) -> None:
        self.sock.close()
