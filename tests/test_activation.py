import pytest

from conftest import ACTIVATION_SHEET, BGES_TEXT, TSEL_TEXT
from rekapan_bot.activation import ActivationService, ValidationMode, WriteState, missing_fields
from rekapan_bot.errors import DuplicateError, UpstreamIOError, ValidationError
from rekapan_bot.schemas import ActivationRecord, FormatTag
from rekapan_bot.sheets import InMemorySheetStore


class FailingAppendStore(InMemorySheetStore):

    async def append_row(self, sheet, row):
        raise UpstreamIOError(f"append {sheet}")


@pytest.fixture
def service(empty_store, clock):
    return ActivationService(empty_store, ACTIVATION_SHEET, clock=clock)


class TestMissingFields:

    def test_enhanced_requires_ao(self):
        assert missing_fields(ActivationRecord(ont_serial="ZTEG1")) == ["AO"]
        assert missing_fields(ActivationRecord(reference_id="SC1")) == []

    def test_legacy_requires_ont_pair(self):
        record = ActivationRecord(reference_id="SC1", ont_serial="ZTEG1")
        assert missing_fields(record, ValidationMode.LEGACY) == ["NIK ONT"]
        assert missing_fields(record, "legacy") == ["NIK ONT"]


class TestActivationService:

    @pytest.mark.asyncio
    async def test_tsel_submission_is_persisted(self, service, empty_store):
        result = await service.submit(TSEL_TEXT, "budi_tech")

        assert result.state == WriteState.PERSISTED
        assert result.format_tag == FormatTag.TSEL
        assert result.record.record_date == "Senin, 15 September 2025"

        rows = empty_store.sheets[ACTIVATION_SHEET]
        assert len(rows) == 2
        assert rows[1][1] == "SC000111"
        assert rows[1][2] == "SC000111"
        assert rows[1][11] == "budi_tech"

    @pytest.mark.asyncio
    async def test_second_submission_of_same_ao_rejected(self, service, empty_store):
        await service.submit("AO : sc123456\nSN ONT : ZTEG1\nNIK ONT : 1", "budi_tech")

        with pytest.raises(DuplicateError) as exc_info:
            await service.submit("AO : SC123456 \nSN ONT : ZTEG2\nNIK ONT : 2", "andi")

        assert exc_info.value.reference_id == "SC123456"
        assert len(empty_store.sheets[ACTIVATION_SHEET]) == 2

    @pytest.mark.asyncio
    async def test_missing_ao_rejected_before_store_access(self, service, empty_store):
        with pytest.raises(ValidationError) as exc_info:
            await service.submit("SN ONT : ZTEG1\nNIK ONT : 1", "budi_tech")

        assert exc_info.value.missing_fields == ["AO"]
        assert len(empty_store.sheets[ACTIVATION_SHEET]) == 1

    @pytest.mark.asyncio
    async def test_legacy_mode(self, empty_store, clock):
        service = ActivationService(empty_store, ACTIVATION_SHEET, validation_mode="legacy", clock=clock)

        with pytest.raises(ValidationError) as exc_info:
            await service.submit("AO : SC9", "budi_tech")
        assert exc_info.value.missing_fields == ["SN ONT", "NIK ONT"]

        result = await service.submit(BGES_TEXT, "budi_tech")
        assert result.record.owner == "BGES"

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, clock):
        store = FailingAppendStore({ACTIVATION_SHEET: [["TANGGAL", "AO"]]})
        service = ActivationService(store, ACTIVATION_SHEET, clock=clock)

        with pytest.raises(UpstreamIOError):
            await service.submit(TSEL_TEXT, "budi_tech")
        assert len(store.sheets[ACTIVATION_SHEET]) == 1
