"""Routes for the auth blueprint."""

from firebase_admin import auth, firestore
from flask import current_app, jsonify, request, session

from noteclub.core.constants import USERS_COLLECTION
from noteclub.extensions import csrf

from . import bp


@bp.route("/session_login", methods=["POST"])
@csrf.exempt
def session_login():
    """
    Called from the client after a successful Firebase login.
    It receives the ID token, verifies it, and creates a server-side session.
    """
    id_token = (request.get_json(silent=True) or {}).get("idToken")
    if not id_token:
        return jsonify({"status": "error", "message": "idToken is required."}), 400

    try:
        decoded_token = auth.verify_id_token(id_token)
    except Exception as e:
        current_app.logger.error(f"Error during session login: {e}")
        return jsonify({"status": "error", "message": "Invalid token."}), 401

    uid = decoded_token["uid"]
    db = firestore.client()
    user_doc = db.collection(USERS_COLLECTION).document(uid).get()
    if not user_doc.exists:
        return (
            jsonify({"status": "error", "message": "User not found in Firestore."}),
            404,
        )

    user_info = user_doc.to_dict() or {}
    session["user_id"] = uid
    session["is_admin"] = user_info.get("isAdmin", False)
    current_app.logger.info(f"User {uid} logged in.")
    return jsonify({"status": "success"})


@bp.route("/logout")
def logout():
    """Clear the server-side session."""
    session.clear()
    return jsonify({"status": "success"})
