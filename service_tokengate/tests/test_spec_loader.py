"""
Unit tests for spec document loading and rendering.
"""

import pytest
import os
import textwrap

from service_tokengate.app.gate.configuration import GateConfiguration
from service_tokengate.app.gate.errors import (
    InvalidRangeError, InvalidSpecError, OverlappingRangeError, UnknownTokenReferenceError
)
from service_tokengate.app.gate.models import LedgerTable, NoRules, RequireOneOf
from service_tokengate.app.spec.loader import (
    apply_spec, build_configuration, read_spec_file, render_spec
)


SPEC_YAML = textwrap.dedent("""
    schema: tezos
    table: storage.ledger_live
    columns:
      address: idx_address
      token: idx_nat
      amount: nat
    whitelist:
      enabled: true
      table: presale_whitelist
    tokenNames:
      gold:
        from: 10
        to: 20
      silver: 3
    rules:
      /: no_rules
      /vip/:
        one_of:
          - gold
          - 42
      /members/: [silver]
""")


class TestSpecLoader:
    """Test cases for the spec loader."""

    @pytest.fixture
    def spec_file(self, tmp_path):
        """Write the sample spec document to disk."""
        path = tmp_path / "tokengate.yaml"
        path.write_text(SPEC_YAML)
        return str(path)

    @pytest.fixture
    def configuration(self, spec_file):
        """Build configuration from the sample spec."""
        return build_configuration(read_spec_file(spec_file))

    def test_ledger_settings(self, configuration):
        """Test table and column names are read."""
        assert configuration.ledger == LedgerTable(
            schema="tezos", table="storage.ledger_live",
            address_column="idx_address", token_column="idx_nat", amount_column="nat"
        )

    def test_whitelist_settings(self, configuration):
        """Test the whitelist section is read and inherits the schema."""
        assert configuration.whitelist_enabled is True
        assert configuration.whitelist.table == "presale_whitelist"
        assert configuration.whitelist.schema == "tezos"
        assert configuration.whitelist.claimed_column == "claimed"

    def test_aliases(self, configuration):
        """Test id and range aliases are registered."""
        assert configuration.aliases.resolve("gold") == set(range(10, 21))
        assert configuration.aliases.resolve("silver") == {3}

    def test_rules(self, configuration):
        """Test no-rules markers, one_of mappings and bare lists."""
        assert configuration.rules.get("/") == NoRules()

        vip = configuration.rules.get("/vip")
        assert isinstance(vip, RequireOneOf)
        assert vip.token_ids == set(range(10, 21)) | {42}

        assert configuration.rules.get("/members").token_ids == {3}

    def test_legacy_token_names(self):
        """Test the id-to-name layout is still accepted."""
        configuration = build_configuration({
            "tokenNames": {0: "genesis", "7": "seven"},
            "rules": {"/vip": {"one_of": ["genesis", "seven"]}},
        })

        assert configuration.aliases.resolve("genesis") == {0}
        assert configuration.rules.get("/vip").token_ids == {0, 7}

    def test_empty_one_of_registers_nothing(self):
        """Test an empty one_of list adds no rule."""
        configuration = build_configuration({"rules": {"/vip": {"one_of": []}}})

        assert configuration.rules.get("/vip") is None

    def test_build_inherits_table_settings(self):
        """Test defaults come from the base configuration."""
        base = GateConfiguration(ledger=LedgerTable(schema="indexer"), whitelist_enabled=True)
        base.set_no_rules("/")

        configuration = build_configuration({"tokenNames": {"gold": 1}}, base)

        assert configuration.ledger.schema == "indexer"
        assert configuration.whitelist_enabled is True
        assert len(configuration.rules) == 0

    def test_render_round_trip(self, configuration):
        """Test rendering then loading gives the same snapshot."""
        rendered = render_spec(configuration)
        reloaded = build_configuration(rendered)

        assert render_spec(reloaded) == rendered
        assert rendered["rules"] == {
            "/": "no_rules",
            "/vip": {"one_of": ["gold", 42]},
            "/members": {"one_of": ["silver"]},
        }
        assert rendered["tokenNames"] == {"gold": {"from": 10, "to": 20}, "silver": 3}
        assert rendered["whitelist"]["enabled"] is True

    def test_unknown_alias(self):
        """Test rules naming unknown aliases fail."""
        with pytest.raises(UnknownTokenReferenceError):
            build_configuration({"rules": {"/secret": {"one_of": ["unicorn"]}}})

    def test_invalid_range(self):
        """Test reversed ranges fail."""
        with pytest.raises(InvalidRangeError):
            build_configuration({"tokenNames": {"gold": {"from": 5, "to": 1}}})

    def test_overlapping_aliases(self):
        """Test overlapping aliases fail."""
        with pytest.raises(OverlappingRangeError):
            build_configuration({"tokenNames": {"gold": {"from": 1, "to": 5}, "silver": 5}})

    @pytest.mark.parametrize("document", [
        {"tokenNames": ["gold"]},
        {"tokenNames": {"gold": "shiny"}},
        {"tokenNames": {"gold": {"from": "a", "to": 2}}},
        {"rules": ["/vip"]},
        {"rules": {"/vip": "everyone"}},
        {"rules": {"/vip": {"one_of": "gold"}}},
        {"rules": {"/vip": [1.5]}},
        {"columns": "idx_address"},
        {"whitelist": True},
    ])
    def test_malformed_documents(self, document):
        """Test malformed documents raise InvalidSpecError."""
        with pytest.raises(InvalidSpecError):
            build_configuration(document)

    def test_apply_spec_merges(self, configuration):
        """Test apply_spec adds to an existing configuration."""
        apply_spec(configuration, {"rules": {"/vip": [7]}})

        assert 7 in configuration.rules.get("/vip").token_ids
        assert 10 in configuration.rules.get("/vip").token_ids

    def test_read_missing_file(self, tmp_path):
        """Test unreadable files raise InvalidSpecError."""
        with pytest.raises(InvalidSpecError):
            read_spec_file(str(tmp_path / "missing.yaml"))

    def test_read_invalid_yaml(self, tmp_path):
        """Test YAML syntax errors raise InvalidSpecError."""
        path = tmp_path / "broken.yaml"
        path.write_text("rules: [unclosed")

        with pytest.raises(InvalidSpecError):
            read_spec_file(str(path))

    def test_read_non_mapping(self, tmp_path):
        """Test documents must be mappings."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(InvalidSpecError):
            read_spec_file(str(path))

    def test_read_empty_file(self, tmp_path):
        """Test an empty file is an empty document."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert read_spec_file(str(path)) == {}

    def test_example_spec_file(self):
        """Test the bundled example spec loads."""
        path = os.path.join(os.path.dirname(__file__), '..', '..', 'tokengate.example.yaml')

        configuration = build_configuration(read_spec_file(path))

        assert configuration.aliases.resolve("founders") == set(range(1, 101))
        assert configuration.rules.get("/") == NoRules()
        assert configuration.rules.get("/vip").token_ids == set(range(1, 101))
