import logging

from flask import Blueprint
from sqlalchemy.exc import SQLAlchemyError

from utils.decorators import oauth_components

bp = Blueprint("health", __name__)

logger = logging.getLogger(__name__)


@bp.get("/health")
def health():
    """
    Health check (API process and token database)
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up and the token database answers
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            database:
              type: string
              example: ok
            version:
              type: string
              example: 1.0.0
      503:
        description: Token database unreachable
    """
    try:
        oauth_components().storage.ping()
    except SQLAlchemyError as exc:
        logger.error("health check: database unreachable (%s)", type(exc).__name__)
        return {"status": "degraded", "database": "unavailable", "version": "1.0.0"}, 503
    return {"status": "ok", "database": "ok", "version": "1.0.0"}, 200
