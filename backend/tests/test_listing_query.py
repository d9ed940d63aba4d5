from starlette.datastructures import QueryParams

from everjourney.db.models import Hotel
from everjourney.services.hotel_listing import HOTEL_LISTING, HOTEL_COLUMNS, HOTEL_FROM, search_hotels
from everjourney.services.listing import (
    FieldKind,
    FilterField,
    ListingQuery,
    ListingSpec,
    INT64_MAX,
    Page,
    SortOption,
    clean_text,
    query_to_raw,
    to_number,
    to_int,
    truncate,
)
from everjourney.services.package_listing import search_packages


def _spec(**overrides):
    options = dict(
        name="test hotels",
        from_sql=HOTEL_FROM,
        columns=HOTEL_COLUMNS,
        count_key="h.id",
        fields=(FilterField("city", FieldKind.INTEGER, predicate="h.city_id = :city"),),
        sorts={"name": SortOption("h.name ASC, h.id ASC")},
        default_sort="name",
        project=dict,
    )
    options.update(overrides)
    return ListingSpec(**options)


def test_page_size_is_clamped():
    assert Page.from_raw(1, 100).per_page == 24
    assert Page.from_raw(1, 1).per_page == 6
    assert Page.from_raw(1, "lots").per_page == 12
    assert Page.from_raw(1, None).per_page == 12


def test_page_number_floor_and_offset():
    assert Page.from_raw(0).number == 1
    assert Page.from_raw("-3").number == 1
    assert Page.from_raw("abc").number == 1
    page = Page.from_raw(3, 10)
    assert (page.limit, page.offset) == (10, 20)


def test_number_parsing_rejects_garbage():
    assert to_number("12.5") == 12.5
    assert to_number("nan") is None
    assert to_number("inf") is None
    assert to_number("abc", 0) == 0


def test_clean_text_strips_control_characters_and_caps_length():
    assert clean_text("  spa\x00\x1f ") == "spa"
    assert len(clean_text("x" * 500)) == 200


def test_truncate_marks_the_cut():
    assert truncate("abcdef", 3) == "abc..."
    assert truncate("abc", 3) == "abc"
    assert truncate(None, 3) == ""


def test_normalize_fills_every_field_with_typed_defaults(db):
    filters = ListingQuery(db, HOTEL_LISTING).normalize({"city": "abc", "stars": "4", "sort": "bogus"})
    assert filters["q"] == ""
    assert filters["city"] is None
    assert filters["stars"] == 4.0
    assert filters["amenities"] == []
    assert filters["checkin"] is None
    assert filters["sort"] == "relevance"


def test_normalize_caps_list_filters(db):
    raw = {"amenities[]": [f"a{i}" for i in range(30)] + [""]}
    filters = ListingQuery(db, HOTEL_LISTING).normalize(raw)
    assert len(filters["amenities"]) == 20


def test_query_to_raw_folds_bracketed_keys():
    raw = query_to_raw(QueryParams("amenities[]=spa&amenities[]=free_wifi&q=goa&page=2"))
    assert raw == {"amenities": ["spa", "free_wifi"], "q": "goa", "page": "2"}


def test_where_binds_only_active_filters(db):
    query = ListingQuery(db, HOTEL_LISTING)
    clauses, params, binds = query.build_where(query.normalize({"q": "Goa", "price_max": "5000"}))
    assert params == {"q": "%goa%", "price_max": 5000.0}
    # active-hotel predicate first, then one fragment per filter
    assert len(clauses) == 3
    assert binds == []


def test_data_and_count_share_where_and_params(db):
    query = ListingQuery(db, HOTEL_LISTING)
    filters = query.normalize({"city": "2", "amenities": ["Swimming Pool"], "sort": "price_asc"})
    stmts = query.statements(filters, Page.from_raw(2, 6))

    assert stmts.where_sql in stmts.data_sql
    assert stmts.where_sql in stmts.count_sql
    assert stmts.count_sql.startswith("SELECT COUNT(DISTINCT h.id)")
    assert "ORDER BY min_price ASC NULLS LAST" in stmts.data_sql
    assert stmts.params["amenities"] == ["swimming_pool"]
    assert [b.key for b in stmts.binds] == ["amenities"]


def test_user_input_never_reaches_sql_text(db, catalog):
    evil = "'; DROP TABLE hotels; --"
    query = ListingQuery(db, HOTEL_LISTING)
    stmts = query.statements(query.normalize({"q": evil, "sort": evil}), Page.from_raw())
    assert evil not in stmts.data_sql
    assert search_hotels(db, {"q": evil}).total == 0
    assert search_hotels(db, {}).total == 3


def test_page_past_the_end_is_empty_with_true_total(db, catalog):
    result = search_hotels(db, {"page": "99"})
    assert result.items == []
    assert result.total == 3
    assert result.pages == 1
    assert not result.has_next


def test_count_failure_falls_back_to_row_count(db, catalog):
    result = ListingQuery(db, _spec(count_key="no_such_column")).fetch({})
    assert result.total == len(result.items) == 4


def test_data_failure_returns_empty_result(db, catalog):
    result = ListingQuery(db, _spec(from_sql="no_such_table h")).fetch({"city": str(catalog.mumbai.id)})
    assert result.items == []
    assert result.total == 0
    assert result.filters["city"] == catalog.mumbai.id


def test_integers_outside_int64_count_as_absent(db):
    assert to_int(str(INT64_MAX)) == INT64_MAX
    assert to_int("99999999999999999999") is None
    assert to_int("-1e19", 0) == 0
    filters = ListingQuery(db, HOTEL_LISTING).normalize({"city": "99999999999999999999"})
    assert filters["city"] is None


def test_huge_page_numbers_keep_offset_in_int64():
    for raw in ("1e20", "1e300", str(10 ** 40)):
        page = Page.from_raw(raw, 12)
        assert page.number > 1
        assert page.offset + page.limit <= INT64_MAX


def test_huge_page_is_empty_not_an_error(db, catalog):
    result = search_hotels(db, {"page": "1e20"})
    assert result.items == []
    assert result.total == 3
    assert search_hotels(db, {"city": "99999999999999999999"}).total == 3


def test_last_page_holds_the_remainder(db, catalog):
    for i in range(4):
        db.add(Hotel(owner_user_id=catalog.hotelier.id, name=f"Extra Stay {i}", address_line1="2 Side Road",
                     city_id=catalog.pune.id, status="active"))
    db.commit()

    first = search_hotels(db, {"per_page": "6", "sort": "relevance"})
    last = search_hotels(db, {"per_page": "6", "sort": "relevance", "page": "2"})
    assert (first.total, first.pages, len(first.items)) == (7, 2, 6)
    assert first.has_next
    assert (last.pages, len(last.items)) == (2, 1)
    assert not last.has_next
    assert {item["hotel_id"] for item in first.items}.isdisjoint(item["hotel_id"] for item in last.items)


def test_same_request_gives_same_view_models(db, catalog):
    raw = {"q": "goa", "sort": "price_asc", "per_page": "6"}
    assert search_packages(db, raw) == search_packages(db, raw)
    assert search_hotels(db, {"amenities": ["wifi"]}) == search_hotels(db, {"amenities": ["wifi"]})
