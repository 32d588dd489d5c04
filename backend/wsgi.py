try:
    from backend.chessvote.server import create_app
except ImportError:  # pragma: no cover
    from chessvote.server import create_app

app, socketio = create_app()
