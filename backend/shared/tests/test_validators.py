import pytest

from shared.validators import STRING_LIST_FIELDS, parse_string_list


class TestParseStringList:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ('["http://a.example","http://b.example"]', ["http://a.example", "http://b.example"]),
            ("http://a.example,http://b.example", ["http://a.example", "http://b.example"]),
            ("  http://a.example ,, http://b.example, ", ["http://a.example", "http://b.example"]),
            (["http://a.example"], ["http://a.example"]),
        ],
    )
    def test_accepted_forms(self, value, expected):
        assert parse_string_list(value) == expected

    @pytest.mark.parametrize("value", ["", ",", " , ,", "[]", []])
    def test_empty_rejected(self, value):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_string_list(value)

    def test_broken_json_rejected(self):
        with pytest.raises(ValueError, match="Invalid JSON array"):
            parse_string_list('["http://a.example"')

    def test_non_string_items_rejected(self):
        with pytest.raises(ValueError, match="array of strings"):
            parse_string_list('["http://a.example", 8710]')

    def test_cors_origins_is_a_string_list_field(self):
        assert "cors_origins" in STRING_LIST_FIELDS
