import json
import logging

from tox_client.constants import Constants
from tox_client.errors import DataDecodingError

logger = logging.getLogger("__main__")


class Encoder(json.JSONEncoder):
    def default(self, obj):
        if hasattr(obj, "encode_into_json"):
            logger.debug(f"Encoding object {type(obj)} with method 'encode_into_json'.")
            return obj.encode_into_json()

        if isinstance(obj, bytes):
            return obj.hex()

        return json.JSONEncoder.default(self, obj)


def encode_data(data: dict) -> bytes:
    """
    Takes in a dictionary and converts it to JSON bytes. Objects with an
    'encode_into_json' method are encoded with it, raw bytes become hex strings.
    """
    return json.dumps(data, cls=Encoder, sort_keys=True).encode(Constants.ENCODING)


def decode_data(encoded_data: str | bytes) -> dict:
    """
    Takes in JSON text or bytes and returns the decoded dictionary.
    """
    try:
        if isinstance(encoded_data, (bytes, bytearray)):
            decoded_data = json.loads(bytes(encoded_data).decode(Constants.ENCODING))
        elif isinstance(encoded_data, str):
            decoded_data = json.loads(encoded_data)
        else:
            raise TypeError(f"Encoded data should be type str or bytes, found type {type(encoded_data)}")

    except Exception as error:
        raise DataDecodingError("Error decoding data.") from error

    if not isinstance(decoded_data, dict):
        raise DataDecodingError(f"Expected a JSON object, found {type(decoded_data)}.")
    return decoded_data
