"""Tests for CSV/XLSX export of the full filtered dataset."""

import io

import pandas as pd
import pytest
from openpyxl import load_workbook

from app.core.exceptions import ValidationError
from app.services import export_service
from app.services.query_builder import QueryRequest
from tests.conftest import KANJI, QUIZ_RESULTS


def make_request(**kwargs) -> QueryRequest:
    return QueryRequest.from_params(default_limit=10, max_limit=1000, **kwargs)


def read_csv(content: bytes) -> pd.DataFrame:
    return pd.read_csv(io.BytesIO(content), encoding="utf-8-sig", dtype=str, keep_default_na=False)


class TestExportRows:
    @pytest.mark.asyncio
    async def test_search_ignores_pagination(self, store):
        request = make_request(search="N5", page="2", limit="1")
        export = await export_service.export_rows(store, KANJI, request, "csv")

        assert export.row_count == 3
        df = read_csv(export.content)
        assert sorted(df["character"]) == sorted(["水", "火", "木"])

    @pytest.mark.asyncio
    async def test_full_table(self, store):
        export = await export_service.export_rows(store, KANJI, make_request(), "csv")
        assert export.row_count == 10
        assert len(read_csv(export.content)) == 10

    @pytest.mark.asyncio
    async def test_csv_metadata(self, store):
        export = await export_service.export_rows(store, KANJI, make_request(), "csv")
        assert export.filename == "kanji_export_all.csv"
        assert export.media_type == "text/csv"
        assert export.headers == {"Content-Disposition": 'attachment; filename="kanji_export_all.csv"'}
        assert export.content.startswith(b"\xef\xbb\xbf")

    @pytest.mark.asyncio
    async def test_column_order(self, store):
        export = await export_service.export_rows(store, KANJI, make_request(), "csv")
        columns = list(read_csv(export.content).columns)
        assert columns[:6] == ["id", "character", "meaning_en", "jlpt_level", "stroke_count", "is_common"]
        assert set(columns[6:]) == {"onyomi", "created_at", "updated_at"}

    @pytest.mark.asyncio
    async def test_sorting_is_applied(self, store):
        request = make_request(sort="stroke_count", order="desc")
        export = await export_service.export_rows(store, KANJI, request, "csv")
        assert read_csv(export.content)["character"].iloc[0] == "金"

    @pytest.mark.asyncio
    async def test_xlsx(self, store):
        request = make_request(filters={"jlpt_level": "N4"})
        export = await export_service.export_rows(store, KANJI, request, "XLSX")

        assert export.filename == "kanji_export_all.xlsx"
        assert export.media_type == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

        workbook = load_workbook(io.BytesIO(export.content))
        assert workbook.sheetnames == ["Export"]
        rows = list(workbook["Export"].iter_rows(values_only=True))
        assert rows[0][:3] == ("id", "character", "meaning_en")
        assert len(rows) == 3
        assert {row[1] for row in rows[1:]} == {"金", "土"}

    @pytest.mark.asyncio
    async def test_empty_result_keeps_headers(self, store):
        export = await export_service.export_rows(store, KANJI, make_request(search="zzz"), "csv")
        assert export.row_count == 0
        header = export.content.decode("utf-8-sig").splitlines()[0]
        assert header == "id,character,meaning_en,jlpt_level,stroke_count,is_common"

    @pytest.mark.asyncio
    async def test_read_only_resources_export(self, store):
        export = await export_service.export_rows(store, QUIZ_RESULTS, make_request(), "csv")
        assert export.row_count == 2
        assert export.filename == "quiz_results_export_all.csv"

    @pytest.mark.asyncio
    async def test_unsupported_format(self, store):
        with pytest.raises(ValidationError) as exc_info:
            await export_service.export_rows(store, KANJI, make_request(), "pdf")
        assert exc_info.value.status_code == 400


class TestBuildDataframe:
    def test_structured_values_become_json_text(self):
        rows = [{"id": 1, "character": "水", "onyomi": ["スイ"]}]
        df = export_service.build_dataframe(KANJI, rows)
        assert list(df.columns) == ["id", "character", "onyomi"]
        assert df["onyomi"].iloc[0] == '["スイ"]'

    def test_extra_columns_come_from_the_first_row(self):
        rows = [
            {"id": 1, "character": "水", "notes": "a"},
            {"id": 2, "character": "火", "notes": "b", "radical": "火"},
        ]
        assert export_service.export_columns(KANJI, rows) == ["id", "character", "notes"]

    def test_render_csv(self):
        df = pd.DataFrame([{"id": 1, "character": "水"}])
        assert export_service.render(df, "csv").decode("utf-8-sig").splitlines() == ["id,character", "1,水"]
