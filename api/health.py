from flask import Blueprint

from . import __version__

bp = Blueprint("health", __name__)

@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            service:
              type: string
              example: token-auth-service
            version:
              type: string
              example: 1.0.0
    """
    return {"status": "ok", "service": "token-auth-service", "version": __version__}, 200
