"""Tests for block-replace merging of the seed aggregator."""

from __future__ import annotations

import pytest

from gensync.core.errors import MergeError
from gensync.merge.aggregator import SEEDER_REGION, AggregatorMerger
from gensync.merge.regions import ManagedRegion, find_region, replace_region, strip_owned_lines

BILLING = "Database\\Seeders\\BillingSeeder"
CRM = "Database\\Seeders\\CrmSeeder"

HAND_WRITTEN = """<?php

namespace Database\\Seeders;

use Illuminate\\Database\\Seeder;

class DatabaseSeeder extends Seeder
{
    public function run(): void
    {
        $this->call(UserSeeder::class);
        \\App\\Models\\User::factory()->create();
    }

    private function helper(): void
    {
        // keep me
    }
}
"""


@pytest.fixture
def merger():
    return AggregatorMerger()


class TestSkeleton:
    def test_missing_file_gets_skeleton(self, merger):
        text = merger.merge(None, [BILLING, CRM])

        assert text.startswith("<?php\n\nnamespace Database\\Seeders;\n\nuse Illuminate\\Database\\Seeder;\n")
        assert "use Database\\Seeders\\BillingSeeder;" in text
        assert "class DatabaseSeeder extends Seeder" in text
        assert SEEDER_REGION.start_marker in text
        assert SEEDER_REGION.end_marker in text
        assert text.index("BillingSeeder::class,") < text.index("CrmSeeder::class,")

    def test_skeleton_is_stable(self, merger):
        text = merger.merge(None, [BILLING])

        assert merger.merge(text, [BILLING]) is None

    def test_colliding_seeder_names_get_aliases(self, merger):
        text = merger.merge(None, ["Database\\Seeders\\Crm\\SalesSeeder", "Database\\Seeders\\Hr\\SalesSeeder"])

        assert "use Database\\Seeders\\Crm\\SalesSeeder as CrmSalesSeeder;" in text
        assert "use Database\\Seeders\\Hr\\SalesSeeder as HrSalesSeeder;" in text
        assert "CrmSalesSeeder::class," in text
        assert "HrSalesSeeder::class," in text

    def test_duplicate_classes_called_once(self, merger):
        text = merger.merge(None, [BILLING, BILLING.lower(), BILLING])

        assert text.count("::class,") == 1


class TestMergeExisting:
    def test_block_replaced_and_custom_code_kept(self, merger):
        text = merger.merge(HAND_WRITTEN, [BILLING])

        assert "$this->call(UserSeeder::class);" not in text
        assert "use Database\\Seeders\\BillingSeeder;" in text
        block_end = text.index(SEEDER_REGION.end_marker)
        custom = text.index("        \\App\\Models\\User::factory()->create();")
        assert block_end < custom
        assert "    private function helper(): void\n    {\n        // keep me\n    }\n" in text

    def test_second_merge_is_a_no_op(self, merger):
        once = merger.merge(HAND_WRITTEN, [BILLING])

        assert merger.merge(once, [BILLING]) is None

    def test_new_module_replaces_block_contents(self, merger):
        once = merger.merge(HAND_WRITTEN, [BILLING])

        twice = merger.merge(once, [BILLING, CRM])

        assert twice.count(SEEDER_REGION.start_marker) == 1
        assert "CrmSeeder::class," in twice
        assert "\\App\\Models\\User::factory()->create();" in twice

    def test_custom_code_reindented(self, merger):
        existing = HAND_WRITTEN.replace(
            "        \\App\\Models\\User::factory()->create();",
            "\\App\\Models\\User::factory()->create();",
        )

        text = merger.merge(existing, [BILLING])

        assert "\n        \\App\\Models\\User::factory()->create();\n" in text

    def test_multiline_call_statement_removed(self, merger):
        existing = HAND_WRITTEN.replace(
            "        $this->call(UserSeeder::class);",
            "        $this->call([\n            UserSeeder::class,\n            RoleSeeder::class,\n        ]);",
        )

        text = merger.merge(existing, [BILLING])

        assert "RoleSeeder" not in text
        assert "\\App\\Models\\User::factory()->create();" in text

    def test_crlf_preserved(self, merger):
        existing = HAND_WRITTEN.replace("\n", "\r\n")

        text = merger.merge(existing, [BILLING])

        assert "\r\n" in text
        assert "\n" not in text.replace("\r\n", "")

    def test_existing_import_alias_is_used(self, merger):
        existing = HAND_WRITTEN.replace(
            "use Illuminate\\Database\\Seeder;",
            "use Illuminate\\Database\\Seeder;\nuse Database\\Seeders\\BillingSeeder as Billing;",
        )

        text = merger.merge(existing, [BILLING])

        assert "Billing::class," in text
        assert text.count("BillingSeeder") == 1

    def test_missing_run_method_raises(self, merger):
        with pytest.raises(MergeError):
            merger.merge("<?php\n\nclass DatabaseSeeder\n{\n}\n", [BILLING])


class TestRegions:
    REGION = ManagedRegion("// start", "// end", owns=lambda line: line.strip().startswith("// generated"))

    def test_find_region(self):
        lines = ["a", "    // start", "x", "    // end", "b"]

        span = find_region(lines, self.REGION)

        assert (span.start, span.end, span.indent) == (1, 3, "    ")

    def test_incomplete_region_not_found(self):
        assert find_region(["// start", "x"], self.REGION) is None
        assert replace_region("// start\nx\n", self.REGION, ["y"]) is None

    def test_replace_region_keeps_outside(self):
        text = "before\r\n// start\r\nold\r\n// end\r\nafter\r\n"

        result = replace_region(text, self.REGION, ["new"])

        assert result == "before\r\n// start\r\nnew\r\n// end\r\nafter\r\n"

    def test_owned_lines_are_stripped(self):
        lines = ["keep", "// generated once", "// start", "inside", "// end", "also keep"]

        assert strip_owned_lines(lines, self.REGION, "$this->call(", ("];", ");")) == ["keep", "also keep"]
