"""
Tests for the operator scripts.
"""
from scripts import find_vendor_duplicates, load_vendors, run_duplicate_analysis


def write_csv(path, text):
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadVendors:
    """CSV vendor loader."""

    def test_parse_matches_header_spellings(self, tmp_path):
        path = write_csv(tmp_path / "v.csv", (
            "Vendor Number,Company,Phone Number,Email\n"
            "V-1,ABC Plumbing LLC,(555) 123-4567,office@abcplumbing.com\n"
            ",,555-000-0000,\n"
            "\n"
            "V-2,Zeta Roofing,,\n"
        ))
        # "Vendor Number" and "Phone Number" are not known spellings
        records = load_vendors.parse_csv(path)
        assert [r["company_name"] for r in records] == ["ABC Plumbing LLC", "Zeta Roofing"]
        assert records[0]["email"] == "office@abcplumbing.com"
        assert records[0]["external_id"] is None

    def test_missing_company_column(self, tmp_path):
        path = write_csv(tmp_path / "v.csv", "id,phone\n1,555\n")
        assert load_vendors.main([str(path)]) == 1

    def test_insert_then_update_by_external_id(self, conn, tmp_path):
        path = write_csv(tmp_path / "v.csv", (
            "external_id,company_name,phone\n"
            "V-1,ABC Plumbing LLC,(555) 123-4567\n"
            "V-2,Zeta Roofing,555-999-0000\n"
        ))
        assert load_vendors.save_to_db(conn, load_vendors.parse_csv(path)) == (2, 0)

        path = write_csv(tmp_path / "v2.csv", (
            "external_id,company_name,phone\n"
            "V-1,ABC Plumbing,(555) 123-4567\n"
        ))
        assert load_vendors.save_to_db(conn, load_vendors.parse_csv(path)) == (0, 1)

        names = [row[0] for row in conn.execute("SELECT company_name FROM vendors ORDER BY company_name")]
        assert names == ["ABC Plumbing", "Zeta Roofing"]

    def test_dry_run_writes_nothing(self, conn, tmp_path):
        path = write_csv(tmp_path / "v.csv", "company_name\nABC Plumbing\n")
        assert load_vendors.main([str(path), "--dry-run"]) == 0
        assert conn.execute("SELECT COUNT(*) FROM vendors").fetchone()[0] == 0


class TestFindVendorDuplicates:
    """Synchronous scan CLI."""

    def test_report(self, make_vendor, tmp_path, capsys):
        make_vendor("ABC Plumbing LLC", phone="(555) 123-4567")
        make_vendor("ABC Plumbing", phone="555-123-4567")
        report = tmp_path / "report.md"

        assert find_vendor_duplicates.main(["--threshold", "0.7", "--report", str(report)]) == 0

        text = report.read_text(encoding="utf-8")
        assert "# Vendor Duplicate Scan Report" in text
        assert "| 75.0% | ABC Plumbing | ABC Plumbing LLC | " in text
        assert "ABC Plumbing" in capsys.readouterr().out

    def test_invalid_threshold(self, db_path):
        assert find_vendor_duplicates.main(["--threshold", "2"]) == 2


class TestRunDuplicateAnalysis:
    """Analysis worker CLI."""

    def test_start_runs_inline(self, conn, make_vendor):
        make_vendor("ABC Plumbing LLC", phone="(555) 123-4567")
        make_vendor("ABC Plumbing", phone="555-123-4567")

        assert run_duplicate_analysis.main(["--start", "--threshold", "0.7"]) == 0

        row = conn.execute(
            "SELECT status, requested_by, duplicates_found FROM vendor_duplicate_analyses"
        ).fetchone()
        assert tuple(row) == ("completed", "cli", 1)

    def test_start_conflicts_with_in_flight(self, conn):
        conn.execute(
            "INSERT INTO vendor_duplicate_analyses (id, requested_by, status, created_at) "
            "VALUES ('busy', 'someone', 'pending', '2030-01-01T00:00:00+00:00')"
        )
        conn.commit()

        assert run_duplicate_analysis.main(["--start"]) == 2

    def test_fail_stale(self, conn):
        conn.execute(
            "INSERT INTO vendor_duplicate_analyses (id, requested_by, status, created_at) "
            "VALUES ('old', 'someone', 'pending', '2000-01-01T00:00:00+00:00')"
        )
        conn.commit()

        assert run_duplicate_analysis.main(["--fail-stale-minutes", "30"]) == 0
        assert conn.execute(
            "SELECT status FROM vendor_duplicate_analyses WHERE id = 'old'"
        ).fetchone()[0] == "failed"
