# Overview: Shared JSON rendering for TransactionError subclasses.

from flask import jsonify

from ..errors import TransactionError


def error_response(exc: TransactionError):
    return jsonify(exc.to_dict()), exc.status_code
