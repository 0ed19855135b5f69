import pytest
from pydantic import ValidationError

from schemas.shop import ShopCreate
from schemas.review import ReviewCreate, DetailedReviewCreate
from utils.validation import sanitize_input, is_valid_phone, is_valid_url, is_valid_coordinate

VALID_SHOP = {
    "name": "Glitch Coffee",
    "address": "東京都千代田区神田錦町3-16",
    "latitude": 35.6917,
    "longitude": 139.7641,
}


def _shop(**overrides):
    data = dict(VALID_SHOP)
    data.update(overrides)
    return ShopCreate(**data)


def test_defaults():
    shop = _shop()
    assert shop.category.value == "cafe"
    assert shop.price_range == 2
    assert shop.payment_methods == ["cash"]
    assert shop.tags == [] and shop.hours == []


def test_text_is_sanitized():
    shop = _shop(name="  <script>alert(1)</script>Glitch <Coffee> ", description="  nice ")
    assert shop.name == "Glitch Coffee"
    assert shop.description == "nice"


@pytest.mark.parametrize("field,value", [
    ("name", "   "),
    ("name", "x" * 101),
    ("latitude", 91),
    ("longitude", -181),
    ("price_range", 5),
    ("phone", "12345"),
    ("phone", "03-1234-ABCD"),
    ("website", "ftp://example.com"),
    ("payment_methods", ["cash", "bitcoin"]),
    ("tags", [f"tag{i}" for i in range(11)]),
])
def test_invalid_fields(field, value):
    with pytest.raises(ValidationError):
        _shop(**{field: value})


def test_tags_are_lowercased_and_deduplicated():
    shop = _shop(tags=["Latte", "latte", " Quiet "])
    assert shop.tags == ["latte", "quiet"]


def test_hours_one_entry_per_day():
    with pytest.raises(ValidationError):
        _shop(hours=[
            {"day_of_week": 1, "open_time": "09:00", "close_time": "18:00"},
            {"day_of_week": 1, "open_time": "10:00", "close_time": "19:00"},
        ])

    shop = _shop(hours=[{"day_of_week": 1, "open_time": "09:00:00", "close_time": "18:00"}])
    assert shop.hours[0].open_time == "09:00"


def test_hours_time_format():
    with pytest.raises(ValidationError):
        _shop(hours=[{"day_of_week": 1, "open_time": "25:00", "close_time": "18:00"}])


def test_review_comment_minimum_length():
    with pytest.raises(ValidationError):
        ReviewCreate(rating=4, comment="   short   ")
    assert ReviewCreate(rating=4, comment="  美味しいコーヒーでした。また来ます  ").comment == "美味しいコーヒーでした。また来ます"


def test_detailed_review_limits():
    with pytest.raises(ValidationError):
        DetailedReviewCreate(comment="too short comment")
    with pytest.raises(ValidationError):
        DetailedReviewCreate(comment="a" * 25, images=[f"https://img/{i}.jpg" for i in range(6)])

    review = DetailedReviewCreate(comment="静かで作業しやすい、電源もある良いお店でした。")
    assert review.visit_purpose.value == "solo"
    assert review.atmosphere_rating == 5


def test_validation_helpers():
    assert sanitize_input("<b>bold</b>", 100) == "bbold/b"
    assert sanitize_input("abcdef", 3) == "abc"
    assert is_valid_phone("03-1234-5678")
    assert not is_valid_phone("123")
    assert is_valid_url("https://example.com/shop")
    assert not is_valid_url("example.com")
    assert is_valid_coordinate(35.0, 139.0)
    assert not is_valid_coordinate(float("nan"), 139.0)
