import logging

import socketio

logger = logging.getLogger(__name__)

# Stock screens listen for "dispense_update" to refresh quantities.
sio = socketio.AsyncServer(async_mode='asgi', cors_allowed_origins='*')


@sio.event
async def connect(sid, environ):
    logger.info(f"SocketIO client connected: {sid}")


@sio.event
async def disconnect(sid):
    logger.info(f"SocketIO client disconnected: {sid}")
