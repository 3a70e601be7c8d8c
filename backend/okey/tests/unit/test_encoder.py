import msgpack
import pytest

from okey.messaging.encoder import MAX_ARRAY_LEN, MAX_FRAME_LEN, DecodeError, decode, encode


class TestEncoder:
    def test_encode_decode_map(self):
        data = {"currentPlayerIndex": 1, "per": 52, "hasOpened": [True, False]}
        assert decode(encode(data)) == data

    def test_bytes_stay_binary(self):
        data = {"type": "snapshot", "data": b"\x00\x01"}
        assert decode(encode(data))["data"] == b"\x00\x01"

    def test_non_map_rejected(self):
        with pytest.raises(DecodeError, match="expected map"):
            decode(msgpack.packb([1, 2, 3]))

    @pytest.mark.parametrize("data", [b"\xc1", b"\x92\x01", b"\x80\x01"])
    def test_malformed_rejected(self, data):
        with pytest.raises(DecodeError):
            decode(data)

    def test_oversized_frame_rejected(self):
        with pytest.raises(DecodeError, match="frame too large"):
            decode(b"\x00" * (MAX_FRAME_LEN + 1))

    def test_array_limit(self):
        data = msgpack.packb({"pool": list(range(MAX_ARRAY_LEN + 1))})
        with pytest.raises(DecodeError):
            decode(data)
