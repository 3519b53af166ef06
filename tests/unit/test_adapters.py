"""Unit tests for payload readers and source adapters.

HTTP is faked with httpx.MockTransport; workbooks are built in memory.
"""
from datetime import date
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from fabric_ingestion.errors.exceptions import SourceUnavailableError, UnsupportedFormatError
from fabric_ingestion.models.parsing_rules import ColumnMappings, ParsingRules
from fabric_ingestion.parsers import (
    ArchiveAdapter,
    DatedExcelUrlAdapter,
    EmailExcelAdapter,
    ExcelUrlAdapter,
    HtmlTableAdapter,
    RenderedLinkAdapter,
)
from fabric_ingestion.parsers.dated_excel_parser import dated_candidates
from fabric_ingestion.parsers.excel_parser import filename_from_url, to_export_url
from fabric_ingestion.parsers.readers import (
    detect_excel_engine,
    is_archive,
    read_html_table,
    read_spreadsheet_payload,
    read_workbook,
    unpack_spreadsheet,
)
from fabric_ingestion.parsers.rendered_link_parser import find_link
from fabric_ingestion.parsers.vendor_profiles import FetchOptions, VendorProfile
from tests.helpers import PRICE_LIST_ROWS, make_multi_sheet_xlsx, make_xlsx, make_zip, mark_zip_encrypted


PRICES_URL = "https://vendor.example.com/files/prices.xlsx"

RULES = ParsingRules(
    column_mappings=ColumnMappings(collection=0, color=1, in_stock=2, meterage=3),
    header_row=2,
)


def _client(routes: dict) -> httpx.AsyncClient:
    """AsyncClient answering from ``{url: (status, content)}``; anything else is 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        status, content = routes.get(str(request.url), (404, b""))
        return httpx.Response(status, content=content)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# =============================================================================
# Readers
# =============================================================================


class TestReaders:
    """Spreadsheet, HTML and zip decoding."""

    def test_read_workbook_all_sheets(self):
        payload = make_multi_sheet_xlsx({"Склад": [["a", 1]], "Транзит": [["b", 2]]})
        table = read_workbook(payload, "prices.xlsx")
        assert table.sheet_names == ["Склад", "Транзит"]
        assert table.first_rows() == [["a", 1]]

    def test_empty_cells_become_none(self):
        table = read_workbook(make_xlsx(PRICE_LIST_ROWS), "prices.xlsx")
        assert table.first_rows()[0] == ["Остатки тканей на складе", None, None, None]

    def test_engine_detection(self):
        assert detect_excel_engine(b"", "a.XLSX") == "openpyxl"
        assert detect_excel_engine(b"", "a.xls") == "xlrd"
        assert detect_excel_engine(b"PK\x03\x04rest") == "openpyxl"
        assert detect_excel_engine(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1rest") == "xlrd"
        with pytest.raises(UnsupportedFormatError):
            detect_excel_engine(b"plain text")

    @pytest.mark.parametrize("payload,name", [
        (b"", "prices.xlsx"),
        (b"not a workbook", "prices.xlsx"),
        (b"not a workbook", None),
    ])
    def test_unreadable_workbook(self, payload, name):
        with pytest.raises(UnsupportedFormatError):
            read_workbook(payload, name)

    def test_html_largest_table_wins(self):
        markup = """
        <html><body>
          <table><tr><td>menu</td></tr></table>
          <table>
            <tr><th>Коллекция</th><th>Наличие</th></tr>
            <tr><td>Mira <b>014</b></td><td>есть</td></tr>
            <tr><td>Orion 2</td><td>нет</td></tr>
          </table>
        </body></html>
        """
        table = read_html_table(markup, "https://vendor.example.com")
        assert table.sheet_names is None
        assert table.first_rows() == [
            ["Коллекция", "Наличие"],
            ["Mira 014", "есть"],
            ["Orion 2", "нет"],
        ]

    def test_html_without_table(self):
        with pytest.raises(UnsupportedFormatError):
            read_html_table("<p>maintenance</p>")

    def test_xlsx_is_not_an_archive(self):
        assert is_archive(make_xlsx([["a"]])) is False
        assert is_archive(make_zip({"a.xlsx": b"x"})) is True
        assert is_archive(b"anything", "bundle.zip") is True

    def test_unpack_picks_first_spreadsheet_by_name(self):
        payload = make_zip({
            "b.xlsx": make_xlsx([["second"]]),
            "a.xlsx": make_xlsx([["first"]]),
        })
        name, content = unpack_spreadsheet(payload)
        assert name == "a.xlsx"
        assert read_workbook(content, name).first_rows() == [["first"]]

    def test_unpack_skips_macos_metadata(self):
        payload = make_zip({
            "__MACOSX/._prices.xlsx": b"junk",
            "readme.txt": b"hello",
            "stock/prices.xlsx": make_xlsx([["a", 1]]),
        })
        name, content = unpack_spreadsheet(payload, "bundle.zip")
        assert name == "prices.xlsx"
        assert read_workbook(content, name).first_rows() == [["a", 1]]

    def test_unpack_without_spreadsheet(self):
        with pytest.raises(UnsupportedFormatError):
            unpack_spreadsheet(make_zip({"readme.txt": b"hello"}), "bundle.zip")

    def test_unpack_corrupt_zip(self):
        with pytest.raises(UnsupportedFormatError):
            unpack_spreadsheet(b"PK\x03\x04broken", "bundle.zip")

    def test_unpack_encrypted_member(self):
        payload = mark_zip_encrypted(make_zip({"prices.xlsx": make_xlsx([["a", 1]])}))
        with pytest.raises(UnsupportedFormatError, match="cannot be extracted"):
            unpack_spreadsheet(payload, "locked.zip")

    def test_payload_reader_unpacks_zip(self):
        payload = make_zip({"prices.xlsx": make_xlsx([["a", 1]])})
        table = read_spreadsheet_payload(payload, "bundle.zip")
        assert table.source_name == "prices.xlsx"


# =============================================================================
# URL adapters
# =============================================================================


class TestExcelUrlAdapter:
    """Spreadsheet-by-URL adapter."""

    def test_google_sheet_export_url(self):
        url = "https://docs.google.com/spreadsheets/d/abc_DEF-123/edit#gid=0"
        assert to_export_url(url) == (
            "https://docs.google.com/spreadsheets/d/abc_DEF-123/export?format=xlsx&id=abc_DEF-123"
        )
        assert to_export_url(PRICES_URL) == PRICES_URL

    def test_filename_from_url(self):
        assert filename_from_url(PRICES_URL) == "prices.xlsx"
        assert filename_from_url("https://vendor.example.com/") is None

    @pytest.mark.asyncio
    async def test_parse_downloaded_workbook(self):
        client = _client({PRICES_URL: (200, make_xlsx(PRICE_LIST_ROWS))})
        adapter = ExcelUrlAdapter(http_client=client)

        outcome = await adapter.parse(PRICES_URL, RULES)

        assert [r.key for r in outcome.records] == ["mira|014 blue", "mira|015 red", "orion|2"]
        assert outcome.fingerprint.sheet_names == ["Sheet1"]
        assert outcome.source_name == "prices.xlsx"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_analyze_finds_header(self):
        client = _client({PRICES_URL: (200, make_xlsx(PRICE_LIST_ROWS))})
        analysis = await ExcelUrlAdapter(http_client=client).analyze(PRICES_URL)
        assert analysis.header_row == 2
        assert analysis.header_values[0] == "Коллекция"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_http_error_maps_to_source_unavailable(self):
        client = _client({PRICES_URL: (500, b"oops")})
        with pytest.raises(SourceUnavailableError):
            await ExcelUrlAdapter(http_client=client).load_table(PRICES_URL)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_transport_error_maps_to_source_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        with pytest.raises(SourceUnavailableError):
            await ExcelUrlAdapter(http_client=client).load_table(PRICES_URL)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_missing_url(self):
        with pytest.raises(SourceUnavailableError):
            await ExcelUrlAdapter().load_table("")

    @pytest.mark.asyncio
    async def test_html_payload_is_unsupported(self):
        client = _client({PRICES_URL: (200, b"<html>login required</html>")})
        with pytest.raises(UnsupportedFormatError):
            await ExcelUrlAdapter(http_client=client).load_table(PRICES_URL)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_validate_file_not_supported(self):
        with pytest.raises(NotImplementedError):
            await ExcelUrlAdapter().validate_file("x.xlsx")


class TestHtmlTableAdapter:
    """HTML page adapter."""

    @pytest.mark.asyncio
    async def test_parse_page(self):
        page_url = "https://vendor.example.com/stock"
        markup = (
            "<table>"
            "<tr><th>Коллекция</th><th>Цвет</th><th>Наличие</th><th>Метраж</th></tr>"
            "<tr><td>Mira</td><td>014 blue</td><td>есть</td><td>85,6</td></tr>"
            "</table>"
        ).encode("utf-8")
        client = _client({page_url: (200, markup)})
        rules = RULES.model_copy(update={"header_row": 1})

        outcome = await HtmlTableAdapter(http_client=client).parse(page_url, rules)

        assert len(outcome.records) == 1
        assert outcome.records[0].meterage == pytest.approx(85.6)
        assert outcome.fingerprint.sheet_names is None
        await client.aclose()


class TestDatedExcelUrlAdapter:
    """Dated URL candidates and look-back download."""

    def test_placeholder_candidates(self):
        candidates = dated_candidates(
            "https://x.example.com/ost_{date}.xlsx", None, None, 3, today=date(2026, 10, 17)
        )
        assert candidates == [
            "https://x.example.com/ost_17.10.2026.xlsx",
            "https://x.example.com/ost_16.10.2026.xlsx",
            "https://x.example.com/ost_15.10.2026.xlsx",
        ]

    def test_regex_candidates(self):
        candidates = dated_candidates(
            "https://x.example.com/ost-01.01.2026-2.xlsx",
            r"\d{2}\.\d{2}\.\d{4}-\d+\.xlsx",
            "%d.%m.%Y-2.xlsx",
            2,
            today=date(2026, 10, 1),
        )
        assert candidates == [
            "https://x.example.com/ost-01.10.2026-2.xlsx",
            "https://x.example.com/ost-30.09.2026-2.xlsx",
        ]

    def test_url_without_date_part(self):
        url = "https://x.example.com/ost.xlsx"
        assert dated_candidates(url, r"\d{2}\.\d{2}\.\d{4}", "%d.%m.%Y", 5) == [url]
        assert dated_candidates(url, None, None, 5) == [url]

    def test_zero_window_still_tries_today(self):
        candidates = dated_candidates("https://x/{date}.xlsx", None, "%Y%m%d", 0, today=date(2026, 1, 2))
        assert candidates == ["https://x/20260102.xlsx"]

    @pytest.mark.asyncio
    async def test_falls_back_to_earlier_day(self):
        template = "https://x.example.com/ost_{date}.xlsx"
        today_url, yesterday_url = dated_candidates(template, None, None, 2)
        client = _client({yesterday_url: (200, make_xlsx(PRICE_LIST_ROWS))})
        profile = VendorProfile(adapter_kind="dated_excel_url", fetch=FetchOptions(window_days=3))

        table = await DatedExcelUrlAdapter(profile=profile, http_client=client).load_table(template)

        assert table.source_name == filename_from_url(yesterday_url)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_nothing_found_in_window(self):
        client = _client({})
        profile = VendorProfile(adapter_kind="dated_excel_url", fetch=FetchOptions(window_days=2))
        with pytest.raises(SourceUnavailableError):
            await DatedExcelUrlAdapter(profile=profile, http_client=client).load_table(
                "https://x.example.com/ost_{date}.xlsx"
            )
        await client.aclose()

    @pytest.mark.asyncio
    async def test_only_window_days_are_requested(self):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(404)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        template = "https://x.example.com/ost_{date}.xlsx"
        profile = VendorProfile(adapter_kind="dated_excel_url", fetch=FetchOptions(window_days=3))

        with pytest.raises(SourceUnavailableError, match="last 3 days"):
            await DatedExcelUrlAdapter(profile=profile, http_client=client).load_table(template)

        assert requested == dated_candidates(template, None, None, 3)
        await client.aclose()


class TestRenderedLinkAdapter:
    """Linked-download adapter."""

    PAGE_URL = "https://vendor.example.com/catalog/stock"
    PAGE = (
        '<html><body>'
        '<a href="/about">О компании</a>'
        '<a href="/files/stock.xlsx">Скачать остатки</a>'
        '</body></html>'
    )

    def test_find_link_resolves_relative_href(self):
        link = find_link(self.PAGE, self.PAGE_URL, ["скачать"])
        assert link == "https://vendor.example.com/files/stock.xlsx"

    def test_find_link_no_match(self):
        assert find_link(self.PAGE, self.PAGE_URL, ["прайс"]) is None

    @pytest.mark.asyncio
    async def test_follows_link_over_http(self):
        client = _client({
            self.PAGE_URL: (200, self.PAGE.encode("utf-8")),
            "https://vendor.example.com/files/stock.xlsx": (200, make_xlsx(PRICE_LIST_ROWS)),
        })
        outcome = await RenderedLinkAdapter(http_client=client).parse(self.PAGE_URL, RULES)
        assert len(outcome.records) == 3
        await client.aclose()

    @pytest.mark.asyncio
    async def test_renders_page_when_configured(self):
        client = _client({"https://vendor.example.com/files/stock.xlsx": (200, make_xlsx(PRICE_LIST_ROWS))})
        profile = VendorProfile(
            adapter_kind="rendered_link",
            fetch=FetchOptions(render_page=True, link_keywords=["остатки"]),
        )
        with patch(
            "fabric_ingestion.parsers.rendered_link_parser.render_page",
            new=AsyncMock(return_value=self.PAGE),
        ) as mock_render:
            table = await RenderedLinkAdapter(profile=profile, http_client=client).load_table(self.PAGE_URL)
        mock_render.assert_awaited_once_with(self.PAGE_URL)
        assert table.sheet_names == ["Sheet1"]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_no_link_on_page(self):
        client = _client({self.PAGE_URL: (200, b"<html><a href='/x'>Contacts</a></html>")})
        with pytest.raises(SourceUnavailableError):
            await RenderedLinkAdapter(http_client=client).load_table(self.PAGE_URL)
        await client.aclose()


# =============================================================================
# Staged-file adapters
# =============================================================================


class TestEmailExcelAdapter:
    """Local staged files and attachment validation."""

    @pytest.mark.asyncio
    async def test_parse_local_workbook(self, tmp_path):
        path = tmp_path / "prices.xlsx"
        path.write_bytes(make_xlsx(PRICE_LIST_ROWS))
        outcome = await EmailExcelAdapter().parse(str(path), RULES)
        assert len(outcome.records) == 3
        assert outcome.source_name == "prices.xlsx"

    @pytest.mark.asyncio
    async def test_parse_zipped_workbook(self, tmp_path):
        path = tmp_path / "prices.zip"
        path.write_bytes(make_zip({"inner/prices.xlsx": make_xlsx(PRICE_LIST_ROWS)}))
        outcome = await EmailExcelAdapter().parse(str(path), RULES)
        assert len(outcome.records) == 3

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(SourceUnavailableError):
            await EmailExcelAdapter().load_table(str(tmp_path / "absent.xlsx"))

    @pytest.mark.asyncio
    async def test_validate_accepts_workbook_with_data(self, tmp_path):
        path = tmp_path / "prices.xlsx"
        path.write_bytes(make_xlsx(PRICE_LIST_ROWS))
        assert await EmailExcelAdapter().validate_file(str(path)) is True

    @pytest.mark.asyncio
    async def test_validate_accepts_zip(self, tmp_path):
        path = tmp_path / "prices.zip"
        path.write_bytes(make_zip({"prices.xlsx": make_xlsx(PRICE_LIST_ROWS)}))
        assert await EmailExcelAdapter().validate_file(str(path)) is True

    @pytest.mark.asyncio
    async def test_validate_rejects_missing_and_empty(self, tmp_path):
        empty = tmp_path / "empty.xlsx"
        empty.write_bytes(b"")
        adapter = EmailExcelAdapter()
        assert await adapter.validate_file(str(tmp_path / "absent.xlsx")) is False
        assert await adapter.validate_file(str(empty)) is False

    @pytest.mark.asyncio
    async def test_validate_rejects_wrong_extension(self, tmp_path):
        path = tmp_path / "prices.csv"
        path.write_bytes(b"a,b\n1,2\n")
        assert await EmailExcelAdapter().validate_file(str(path)) is False

    @pytest.mark.asyncio
    async def test_validate_rejects_corrupt_workbook(self, tmp_path):
        path = tmp_path / "prices.xlsx"
        path.write_bytes(b"definitely not a workbook")
        assert await EmailExcelAdapter().validate_file(str(path)) is False

    @pytest.mark.asyncio
    async def test_validate_rejects_boilerplate_only(self, tmp_path):
        path = tmp_path / "report.xlsx"
        path.write_bytes(make_xlsx([
            ["Отчет создан 17.10.2026", None],
            ["Ед.изм.", "пог. м"],
        ]))
        assert await EmailExcelAdapter().validate_file(str(path)) is False


class TestArchiveAdapter:
    """Zip container by URL or local path."""

    @pytest.mark.asyncio
    async def test_local_archive(self, tmp_path):
        path = tmp_path / "bundle.zip"
        path.write_bytes(make_zip({"__MACOSX/._x.xlsx": b"junk", "x.xlsx": make_xlsx(PRICE_LIST_ROWS)}))
        table = await ArchiveAdapter().load_table(str(path))
        assert table.source_name == "x.xlsx"
        assert len(table.first_rows()) == 5

    @pytest.mark.asyncio
    async def test_remote_archive(self):
        url = "https://vendor.example.com/bundle.zip"
        client = _client({url: (200, make_zip({"x.xlsx": make_xlsx(PRICE_LIST_ROWS)}))})
        outcome = await ArchiveAdapter(http_client=client).parse(url, RULES)
        assert len(outcome.records) == 3
        await client.aclose()

    @pytest.mark.asyncio
    async def test_archive_without_spreadsheet(self, tmp_path):
        path = tmp_path / "bundle.zip"
        path.write_bytes(make_zip({"readme.txt": b"hi"}))
        with pytest.raises(UnsupportedFormatError):
            await ArchiveAdapter().load_table(str(path))
