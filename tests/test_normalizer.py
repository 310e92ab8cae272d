import pytest

from policy_valuation.core.errors import InvalidInputError
from policy_valuation.valuation.normalizer import MAX_CONTRACT_YEARS, normalize_policy


class TestRejections:
    def test_negative_contract_period_names_field(self, aia_policy):
        aia_policy["contract_period_years"] = -1
        with pytest.raises(InvalidInputError) as exc:
            normalize_policy(aia_policy)
        assert "contract_period_years" in exc.value.fields
        assert "contract_period_years" in str(exc.value)

    def test_zero_contract_period(self, aia_policy):
        aia_policy["contract_period_years"] = 0
        with pytest.raises(InvalidInputError) as exc:
            normalize_policy(aia_policy)
        assert exc.value.fields == ["contract_period_years"]

    @pytest.mark.parametrize("term", [101, 10 ** 12])
    def test_term_beyond_maximum(self, aia_policy, term):
        aia_policy["contract_period_years"] = term
        with pytest.raises(InvalidInputError) as exc:
            normalize_policy(aia_policy)
        assert exc.value.fields == ["contract_period_years"]

    def test_paid_years_beyond_contract(self, aia_policy):
        aia_policy["paid_years"] = 11
        with pytest.raises(InvalidInputError) as exc:
            normalize_policy(aia_policy)
        assert exc.value.fields == ["paid_years"]

    def test_negative_paid_years(self, aia_policy):
        aia_policy["paid_years"] = -2
        with pytest.raises(InvalidInputError) as exc:
            normalize_policy(aia_policy)
        assert "paid_years" in exc.value.fields

    def test_every_offending_field_is_reported(self, aia_policy):
        aia_policy["annual_premium"] = -10
        aia_policy["surrender_value"] = -1
        aia_policy["company"] = "  "
        with pytest.raises(InvalidInputError) as exc:
            normalize_policy(aia_policy)
        assert set(exc.value.fields) == {"annual_premium", "surrender_value", "company"}

    def test_missing_required_field(self, aia_policy):
        del aia_policy["annual_premium"]
        with pytest.raises(InvalidInputError) as exc:
            normalize_policy(aia_policy)
        assert exc.value.fields == ["annual_premium"]

    def test_fractional_years_rejected(self, aia_policy):
        aia_policy["contract_period_years"] = 7.5
        with pytest.raises(InvalidInputError) as exc:
            normalize_policy(aia_policy)
        assert "contract_period_years" in exc.value.fields

    def test_non_finite_amount_rejected(self, aia_policy):
        aia_policy["total_premium"] = float("inf")
        with pytest.raises(InvalidInputError) as exc:
            normalize_policy(aia_policy)
        assert exc.value.fields == ["total_premium"]

    def test_unparseable_number_rejected(self, aia_policy):
        aia_policy["annual_premium"] = "three thousand"
        with pytest.raises(InvalidInputError) as exc:
            normalize_policy(aia_policy)
        assert exc.value.fields == ["annual_premium"]


class TestDefaults:
    def test_maximum_term_accepted(self, aia_policy):
        aia_policy["contract_period_years"] = MAX_CONTRACT_YEARS
        assert normalize_policy(aia_policy).contract_period_years == 100

    def test_valid_facts_pass_through(self, aia_policy):
        policy = normalize_policy(aia_policy)
        assert policy.company == "AIA"
        assert policy.contract_period_years == 10
        assert policy.paid_years == 5
        assert policy.total_premium == 15000
        assert policy.surrender_value == 12000
        assert policy.remaining_years == 5
        assert policy.paid_ratio == 0.5
        assert policy.has_real_estate_rider is False

    def test_total_premium_defaults_to_full_contract(self, aia_policy):
        del aia_policy["total_premium"]
        policy = normalize_policy(aia_policy)
        assert policy.total_premium == 3000 * 10

    def test_surrender_value_defaults_to_paid_premiums_less_charge(self, aia_policy):
        aia_policy["surrender_value"] = None
        policy = normalize_policy(aia_policy)
        assert policy.surrender_value == pytest.approx(0.9 * 3000 * 5)

    def test_currency_is_upper_cased(self, aia_policy):
        aia_policy["currency"] = " hkd "
        assert normalize_policy(aia_policy).currency == "HKD"

    def test_numeric_strings_accepted(self, aia_policy):
        aia_policy["paid_years"] = "5"
        aia_policy["annual_premium"] = "3000.50"
        policy = normalize_policy(aia_policy)
        assert policy.paid_years == 5
        assert policy.annual_premium == 3000.5

    def test_fully_paid_policy_is_valid(self, aia_policy):
        aia_policy["paid_years"] = 10
        assert normalize_policy(aia_policy).remaining_years == 0
