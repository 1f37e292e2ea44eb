import logging
from dataclasses import dataclass
from typing import Dict

from flask import current_app, request
from flask_socketio import emit

from sketchparty import socketio
from sketchparty.errors import MalformedMessage, SendFailure
from sketchparty.models import Message, MessageType
from sketchparty.services.game import GameServices, SessionHandler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SocketIOConnection:
    """A Socket.IO client (sid) seen through the session core's Connection protocol."""
    sid: str
    namespace: str = '/ws'

    def send(self, message: Message) -> None:
        server = socketio.server
        if server is None or not server.manager.is_connected(self.sid, self.namespace):
            raise SendFailure(self, 'not connected')
        try:
            socketio.emit(message.type, message.to_dict(), to=self.sid, namespace=self.namespace)
        except Exception as exc:
            raise SendFailure(self, exc) from exc

    def close(self) -> None:
        try:
            socketio.server.disconnect(self.sid, namespace=self.namespace)
        except Exception as exc:
            # already gone
            logger.debug(f"[close] sid={self.sid} error={exc}")


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def register_socketio_handlers(services: GameServices, namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on ``namespace``.

    One SessionHandler per sid is opened on connect and closed on
    disconnect. Inbound events are named after their type tag.
    """
    sessions: Dict[str, SessionHandler] = {}

    def handle_connect():
        sid = _get_sid()
        sessions[sid] = services.open_session(SocketIOConnection(sid, namespace))
        current_app.logger.info(f"[connect] sid={_get_sid()}")
        emit('connected', {'message': f'Connected to {namespace}'})

    def handle_disconnect(reason=None):
        session = sessions.pop(_get_sid(), None)
        current_app.logger.info(f"[disconnect] sid={_get_sid()} reason={reason}")
        if session is not None:
            session.close()

    def _inbound(tag):
        def handle_event(data=None):
            session = sessions.get(_get_sid())
            if session is None:
                # disconnected already; nothing to attach the event to
                current_app.logger.info(f"[drop] sid={_get_sid()} event={tag}")
                return
            try:
                message = Message.from_event(tag, data)
            except MalformedMessage as exc:
                current_app.logger.info(f"[malformed] sid={_get_sid()} error={exc}")
                emit(MessageType.ERROR, Message.error(str(exc)).to_dict())
                return
            session.handle(message)
        handle_event.__name__ = f'handle_{tag}'
        return handle_event

    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    for tag in MessageType.INBOUND:
        socketio.on_event(tag, _inbound(tag), namespace=namespace)
