import pytest

from shared.validators import parse_origin_list


class TestParseOriginList:
    def test_json_array_string(self):
        result = parse_origin_list('["http://a.com","http://b.com"]')
        assert result == ["http://a.com", "http://b.com"]

    def test_comma_separated_string(self):
        result = parse_origin_list("http://a.com,http://b.com")
        assert result == ["http://a.com", "http://b.com"]

    def test_comma_separated_with_whitespace(self):
        result = parse_origin_list(" http://a.com , http://b.com ,")
        assert result == ["http://a.com", "http://b.com"]

    def test_passthrough_list(self):
        origins = ["http://a.com", "http://b.com"]
        assert parse_origin_list(origins) == origins

    def test_empty_string_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_origin_list("")

    def test_empty_json_array_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_origin_list("[]")

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError, match="Invalid JSON array"):
            parse_origin_list("[not valid json")

    def test_non_string_items_raise(self):
        with pytest.raises(ValueError, match="array of strings"):
            parse_origin_list("[1, 2]")
