"""Tests for the sharded store using the file backend."""

import asyncio
import json

import pytest

from conftest import make_product
from tradesite.core.errors import InvalidSectionError, NotFoundError, ValidationError
from tradesite.models.inquiry import InquiryCreate
from tradesite.models.site import SECTIONS, SiteData


def run(coro):
    return asyncio.run(coro)


class TestSections:
    def test_empty_store_reads_skeletons(self, storage):
        doc, report = run(storage.get_document())
        assert doc.settings.siteName.en == ""
        assert doc.defaultLocale == "en"
        assert doc.products == []
        assert report.clean

    def test_update_section_is_read_back(self, storage):
        run(storage.update_section("hero", {"title": {"en": "Hello", "zh": "你好"}}))
        doc, _ = run(storage.get_document())
        assert doc.hero.title.en == "Hello"
        assert doc.hero.title.zh == "你好"
        # Fields missing from the shard come from the skeleton
        assert doc.hero.subtitle.en == ""

    def test_unknown_section_rejected(self, storage):
        with pytest.raises(InvalidSectionError):
            run(storage.update_section("bogus", {}))
        with pytest.raises(InvalidSectionError):
            run(storage.get_section("products"))

    def test_invalid_section_value_rejected(self, storage):
        with pytest.raises(ValidationError) as exc:
            run(storage.update_section("locales", ["fr"]))
        assert exc.value.errors

    def test_partial_shard_is_merged_over_skeleton(self, storage):
        (storage.data_dir / "contact.json").write_text(
            json.dumps({"phone": "+86 574 0000", "map": {"lat": 29.8}}), encoding="utf-8"
        )
        contact = run(storage.get_section("contact"))
        assert contact["phone"] == "+86 574 0000"
        assert contact["map"] == {"lat": 29.8, "lng": 0, "zoom": 10}
        assert contact["address"] == {"en": "", "zh": ""}

    def test_corrupt_shard_falls_back(self, storage):
        (storage.data_dir / "settings.json").write_text("{not json", encoding="utf-8")
        doc, _ = run(storage.get_document())
        assert doc.settings.siteName.en == ""


class TestDefaultLocale:
    def test_stored_raw(self, storage):
        run(storage.update_section("defaultLocale", "zh"))
        assert (storage.data_dir / "defaultLocale.txt").read_text(encoding="utf-8") == "zh"
        doc, _ = run(storage.get_document())
        assert doc.defaultLocale == "zh"

    def test_json_encoded_input_is_unwrapped(self, storage):
        run(storage.update_section("defaultLocale", '"zh"'))
        assert (storage.data_dir / "defaultLocale.txt").read_text(encoding="utf-8") == "zh"

    def test_legacy_double_encoded_shard_is_migrated(self, storage):
        (storage.data_dir / "defaultLocale.json").write_text('"\\"zh\\""', encoding="utf-8")
        doc, _ = run(storage.get_document())
        assert doc.defaultLocale == "zh"
        assert (storage.data_dir / "defaultLocale.txt").read_text(encoding="utf-8") == "zh"
        assert not (storage.data_dir / "defaultLocale.json").exists()

    def test_garbage_locale_uses_default(self, storage):
        (storage.data_dir / "defaultLocale.txt").write_text("klingon", encoding="utf-8")
        doc, _ = run(storage.get_document())
        assert doc.defaultLocale == "en"


class TestProducts:
    def test_upsert_creates_then_replaces(self, storage):
        product, created = run(storage.upsert_product(make_product("p1")))
        assert created
        assert product.createdAt and product.updatedAt

        again, created = run(storage.upsert_product(make_product("p1", name="Renamed")))
        assert not created
        assert again.createdAt == product.createdAt

        products = run(storage.list_products())
        assert [p.id for p in products] == ["p1"]
        assert products[0].name.en == "Renamed"

    def test_replace_moves_updated_at(self, storage):
        stale = "2020-01-01T00:00:00.000Z"
        first, _ = run(storage.upsert_product(make_product("p1", createdAt=stale, updatedAt=stale)))
        assert first.updatedAt == stale

        # Client resends the record it read, old timestamp included
        edited = first.model_copy(update={"sku": "EDITED"})
        second, created = run(storage.upsert_product(edited))
        assert not created
        assert second.createdAt == stale
        assert second.updatedAt != stale
        assert run(storage.get_product("p1")).updatedAt == second.updatedAt

    def test_batch_replace_moves_updated_at(self, storage):
        stale = "2020-01-01T00:00:00.000Z"
        run(storage.upsert_product(make_product("p1", updatedAt=stale)))
        stored = run(storage.upsert_products([make_product("p1", updatedAt=stale)]))
        assert stored[0].updatedAt != stale

    def test_single_upsert_prepends(self, storage):
        run(storage.upsert_product(make_product("p1")))
        run(storage.upsert_product(make_product("p2")))
        assert [p.id for p in run(storage.list_products())] == ["p2", "p1"]

    def test_batch_upsert_appends_in_order(self, storage):
        run(storage.upsert_product(make_product("p1")))
        run(storage.upsert_products([make_product("p2"), make_product("p3"), make_product("p1")]))
        assert [p.id for p in run(storage.list_products())] == ["p1", "p2", "p3"]

    def test_update_product_merges_fields(self, storage):
        run(storage.upsert_product(make_product("p1")))
        updated = run(storage.update_product("p1", {"sku": "NEW", "name": {"zh": "零件"}}))
        assert updated.sku == "NEW"
        assert updated.name.en == "Widget"
        assert updated.name.zh == "零件"

    def test_update_missing_product(self, storage):
        with pytest.raises(NotFoundError):
            run(storage.update_product("nope", {"sku": "x"}))

    def test_update_rejects_bad_main_image(self, storage):
        run(storage.upsert_product(make_product("p1")))
        with pytest.raises(ValidationError):
            run(storage.update_product("p1", {"mainImage": "/elsewhere.jpg"}))

    def test_delete_removes_from_index_record_and_featured(self, storage):
        run(storage.upsert_product(make_product("p1")))
        run(storage.upsert_product(make_product("p2")))
        run(storage.update_section("featuredProductIds", ["p1", "p2"]))

        run(storage.delete_product("p1"))

        doc, _ = run(storage.get_document())
        assert [p.id for p in doc.products] == ["p2"]
        assert doc.featuredProductIds == ["p2"]
        assert not (storage.data_dir / "products" / "p1.json").exists()

    def test_delete_missing_product(self, storage):
        with pytest.raises(NotFoundError):
            run(storage.delete_product("ghost"))


class TestRepair:
    def test_missing_record_is_reported_not_fatal(self, storage):
        run(storage.upsert_product(make_product("p1")))
        run(storage.upsert_product(make_product("p2")))
        (storage.data_dir / "products" / "p1.json").unlink()

        doc, report = run(storage.get_document())
        assert [p.id for p in doc.products] == ["p2"]
        assert report.missingProducts == ["p1"]

    def test_orphan_records_are_reported(self, storage):
        run(storage.upsert_product(make_product("p1")))
        (storage.data_dir / "products" / "stray.json").write_text(
            make_product("stray").model_dump_json(), encoding="utf-8"
        )
        report = run(storage.repair_report())
        assert report.orphanProducts == ["stray"]
        assert report.missingProducts == []
        assert not report.clean


class TestInquiries:
    def test_create_and_list_newest_first(self, storage):
        first = run(storage.create_inquiry(InquiryCreate(name="A", email="a@example.com", message="hi")))
        second = run(storage.create_inquiry({"name": "B", "email": "b@example.com", "message": "yo"}))
        # Force distinct timestamps
        run(storage.update_inquiry(first.id, {"createdAt": "2024-01-01T00:00:00.000Z"}))
        run(storage.update_inquiry(second.id, {"createdAt": "2024-06-01T00:00:00.000Z"}))

        inquiries = run(storage.list_inquiries())
        assert [i.id for i in inquiries] == [second.id, first.id]
        assert first.id.startswith("inq-")
        assert first.status == "new"

    def test_update_status(self, storage):
        inquiry = run(storage.create_inquiry({"name": "A", "email": "a@example.com", "message": "hi"}))
        updated = run(storage.update_inquiry(inquiry.id, {"status": "closed"}))
        assert updated.status == "closed"
        assert run(storage.list_inquiries())[0].status == "closed"

    def test_update_missing_inquiry(self, storage):
        with pytest.raises(NotFoundError):
            run(storage.update_inquiry("inq-missing", {"status": "closed"}))


class TestDocument:
    def test_replace_document_round_trip(self, storage, default_doc):
        run(storage.replace_document(default_doc))
        doc, report = run(storage.get_document())
        assert doc == default_doc
        assert report.clean

    def test_replace_document_drops_stale_products(self, storage, default_doc):
        run(storage.upsert_product(make_product("stale")))
        run(storage.replace_document(default_doc))
        ids = [p.id for p in run(storage.list_products())]
        assert "stale" not in ids
        assert not (storage.data_dir / "products" / "stale.json").exists()

    def test_initialize_only_once(self, storage, default_doc):
        assert run(storage.initialize_default_data(default_doc))
        run(storage.update_section("hero", {"title": {"en": "Custom", "zh": ""}}))
        assert not run(storage.initialize_default_data(default_doc))
        doc, _ = run(storage.get_document())
        assert doc.hero.title.en == "Custom"

    def test_every_section_written(self, storage, default_doc):
        run(storage.replace_document(default_doc))
        for name in SECTIONS:
            suffix = ".txt" if name == "defaultLocale" else ".json"
            assert (storage.data_dir / f"{name}{suffix}").exists()

    def test_shard_names_cannot_escape(self, storage):
        from tradesite.core.errors import StorageError

        with pytest.raises(StorageError):
            run(storage.read_shard("../outside.json"))

    def test_empty_document_model(self):
        assert SiteData().products == []
