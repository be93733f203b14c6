"""Unit tests for climate region inference."""
import pytest

from homecare.services.regions import DEFAULT_REGION, REGIONS, find_state, infer_region

pytestmark = pytest.mark.unit


class TestInferRegion:
    @pytest.mark.parametrize(
        "address,expected",
        [
            ("1 Market St, San Francisco, CA 94105", "West Coast"),
            ("200 Ocean Dr, Miami, Florida", "Southeast"),
            ("5 Elm St, Austin, TX 78701", "Southwest"),
            ("12 Rose Ave, Portland, OR 97201", "Pacific Northwest"),
            ("900 Pine St, Seattle, WA", "Pacific Northwest"),
            ("3 Peak Rd, Denver, CO 80202", "Mountain States"),
            ("45 Lake Shore Dr, Chicago, IL 60611", "Midwest"),
            ("7 Bayou Ln, New Orleans, LA", "South Central"),
            ("1 Glacier Way, Anchorage, AK", "Alaska"),
            ("2 Beach Rd, Honolulu, HI 96815", "Hawaii"),
            ("10 Main St, Santa Fe, New Mexico", "Southwest"),
        ],
    )
    def test_known_states(self, address, expected):
        assert infer_region(address) == expected

    def test_state_codes_must_be_whole_words(self):
        # "Oakland" contains "ak", "Cambridge" contains "ca"
        assert infer_region("14 Oakland Ave, Cambridge, MA 02139") == DEFAULT_REGION

    def test_case_insensitive(self):
        assert infer_region("1 main st, sacramento, ca") == "West Coast"

    def test_unknown_or_empty_defaults_to_northeast(self):
        assert infer_region("221B Baker Street, London") == DEFAULT_REGION
        assert infer_region("") == DEFAULT_REGION
        assert infer_region(None) == DEFAULT_REGION

    def test_state_part_beats_street_name(self):
        # Texas only appears in the street part
        assert infer_region("Texas Ave, Los Angeles, California") == "West Coast"

    def test_default_region_is_selectable(self):
        assert DEFAULT_REGION in REGIONS
        assert len(REGIONS) == len(set(REGIONS))

    @pytest.mark.parametrize(
        "address,expected",
        [
            ("1 Main St, Denver, Colorado 80202", "Mountain States"),
            ("88 High St, Columbus, Ohio", "Midwest"),
            ("400 Broad St, Seattle, Washington 98109", "Pacific Northwest"),
            ("3 Temple Sq, Salt Lake City, Utah", "Mountain States"),
            ("12 Grand Ave, Wichita, Kansas", "Midwest"),
            ("6 Lake Dr, Ann Arbor, Michigan 48104", "Midwest"),
            ("1 Ranch Rd, Bozeman, Montana", "Mountain States"),
            ("9 River Rd, Little Rock, Arkansas", "South Central"),
        ],
    )
    def test_full_state_names(self, address, expected):
        assert infer_region(address) == expected

    def test_street_directionals_are_not_states(self):
        assert infer_region("1600 Peachtree St NE, Atlanta, GA 30309") == DEFAULT_REGION
        assert infer_region("500 Pine St NE, Seattle, WA 98101") == "Pacific Northwest"

    def test_county_road_is_not_colorado(self):
        assert infer_region("10 Co Rd 5, Ithaca, NY 14850") == DEFAULT_REGION

    def test_street_named_after_a_state(self):
        assert infer_region("10 Washington St, Boston, MA 02108") == DEFAULT_REGION
        assert infer_region("22 Ohio Ave, Austin, Texas") == "Southwest"

    def test_code_before_zip_without_commas(self):
        assert infer_region("1 Main St Denver CO 80202") == "Mountain States"
        assert infer_region("1 Main St, Denver, CO, 80202-1234") == "Mountain States"


class TestFindState:
    def test_longest_name_wins(self):
        assert find_state("1 Capitol St, Charleston, West Virginia") == "WV"
        assert find_state("1 Capitol Sq, Richmond, Virginia") == "VA"

    def test_unmapped_states_are_still_found(self):
        assert find_state("1 Broadway, New York, NY 10004") == "NY"
        assert infer_region("1 Broadway, New York, NY 10004") == DEFAULT_REGION

    def test_nothing_found(self):
        assert find_state("1 Main St") is None
        assert find_state(None) is None
