from __future__ import annotations

from flask import Blueprint, g, jsonify

from models.schemas.user import ProfileOutSchema
from utils.decorators import jwt_required

bp = Blueprint("users", __name__, url_prefix="/user")

profile_out_schema = ProfileOutSchema()


@bp.get("/profile")
@jwt_required()
def profile():
    """
    Get the current user's profile.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
        schema:
          type: object
          properties:
            email: { type: string }
      401:
        description: Missing, invalid or expired access token
    """
    return jsonify(profile_out_schema.dump(g.current_user)), 200
