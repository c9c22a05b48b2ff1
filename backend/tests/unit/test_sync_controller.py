"""Unit tests for SyncController — saving, deleting and reconciling the draft."""

import asyncio

import pytest

from survey_sync.application.services import DraftState, DraftStatus, IdentitySession, SyncController
from survey_sync.domain.entities import CollectionSnapshot, DocumentWrite, Row, SurveyDocument
from survey_sync.domain.exceptions import (
    EntityNotFoundError,
    IdentityError,
    StoreWriteError,
    ValidationError,
)


def _fill_erp_migration(draft: DraftState) -> None:
    draft.set_title("ERP MIGRATION")
    row_id = draft.acesso_rows[0].id
    draft.update_row("acesso", row_id, "variavel", "Pedidos")
    draft.update_row("acesso", row_id, "problema", "API/Interface Inexistente ou Instável")
    draft.update_row("acesso", row_id, "detalhe", "sem API")
    draft.remove_row("qualidade", draft.qualidade_rows[0].id)


def _write_ops(store) -> list[str]:
    return [op for op, _ in store.calls if op in ("create", "replace", "delete")]


# ── save ──


@pytest.mark.asyncio
@pytest.mark.parametrize("title", ["", "   ", "\t\n"])
async def test_save_with_blank_title_never_calls_store(store, controller, title):
    controller.draft.set_title(title)

    with pytest.raises(ValidationError) as exc_info:
        await controller.save()

    assert exc_info.value.field == "temaCentral"
    assert store.calls == []
    assert controller.draft.status is DraftStatus.UNBOUND


@pytest.mark.asyncio
async def test_first_save_creates_and_binds(store, controller):
    _fill_erp_migration(controller.draft)

    doc_id = await controller.save()

    assert controller.draft.status is DraftStatus.BOUND
    assert controller.draft.document_id == doc_id
    stored = store.documents[doc_id]
    assert stored.tema_central == "ERP MIGRATION"
    assert stored.author == "user-anon"
    assert stored.acesso_rows[0].detalhe == "sem API"
    assert stored.qualidade_rows == []


@pytest.mark.asyncio
async def test_second_save_replaces_instead_of_creating(store, controller):
    _fill_erp_migration(controller.draft)

    first = await controller.save()
    controller.draft.set_title("ERP MIGRATION V2")
    second = await controller.save()

    assert first == second
    assert _write_ops(store) == ["create", "replace"]
    assert len(store.documents) == 1
    assert store.documents[first].tema_central == "ERP MIGRATION V2"


@pytest.mark.asyncio
async def test_save_is_full_replace_not_merge(store, controller):
    _fill_erp_migration(controller.draft)
    doc_id = await controller.save()
    await store.replace(
        doc_id,
        DocumentWrite(
            tema_central="REMOTE",
            acesso_rows=(),
            qualidade_rows=(Row(id=99, variavel="remote only"),),
            author="someone-else",
        ),
    )

    await controller.save()

    stored = store.documents[doc_id]
    assert stored.tema_central == "ERP MIGRATION"
    assert stored.qualidade_rows == []
    assert [r.variavel for r in stored.acesso_rows] == ["Pedidos"]
    assert stored.author == "user-anon"


@pytest.mark.asyncio
async def test_save_then_load_round_trips(store, controller):
    _fill_erp_migration(controller.draft)
    saved = controller.draft.to_document()
    doc_id = await controller.save()
    first_stamp = store.documents[doc_id].updated_at

    await controller.save()
    loaded = await controller.load(doc_id)

    assert loaded.tema_central == saved.tema_central
    assert loaded.acesso_rows == saved.acesso_rows
    assert loaded.qualidade_rows == saved.qualidade_rows
    assert loaded.updated_at >= first_stamp


@pytest.mark.asyncio
async def test_repeated_save_keeps_fields_and_advances_timestamp(store, controller):
    _fill_erp_migration(controller.draft)
    doc_id = await controller.save()
    before = store.documents[doc_id]

    await controller.save()
    after = store.documents[doc_id]

    assert after.tema_central == before.tema_central
    assert after.acesso_rows == before.acesso_rows
    assert after.qualidade_rows == before.qualidade_rows
    assert after.updated_at >= before.updated_at


@pytest.mark.asyncio
async def test_concurrent_saves_create_one_document(store, controller):
    _fill_erp_migration(controller.draft)

    ids = await asyncio.gather(controller.save(), controller.save())

    assert ids[0] == ids[1]
    assert _write_ops(store) == ["create", "replace"]
    assert len(store.documents) == 1


@pytest.mark.asyncio
async def test_failed_create_leaves_draft_unbound(store, controller):
    _fill_erp_migration(controller.draft)
    store.fail_next("create")

    with pytest.raises(StoreWriteError):
        await controller.save()

    assert controller.draft.status is DraftStatus.UNBOUND
    assert controller.draft.tema_central == "ERP MIGRATION"
    assert not controller.is_saving
    assert store.documents == {}


@pytest.mark.asyncio
async def test_failed_replace_keeps_local_edits(store, controller):
    _fill_erp_migration(controller.draft)
    doc_id = await controller.save()
    controller.draft.set_title("LOCAL EDIT")
    store.fail_next("replace")

    with pytest.raises(StoreWriteError):
        await controller.save()

    assert controller.draft.document_id == doc_id
    assert controller.draft.tema_central == "LOCAL EDIT"
    assert store.documents[doc_id].tema_central == "ERP MIGRATION"


@pytest.mark.asyncio
async def test_save_without_identity_fails_before_store(store, provider_factory):
    identity = IdentitySession(provider_factory(fail_anonymous=True))
    controller = SyncController(store, identity, DraftState())
    controller.draft.set_title("ERP MIGRATION")

    with pytest.raises(IdentityError):
        await controller.save()

    assert store.calls == []


@pytest.mark.asyncio
async def test_bootstrap_token_subject_stamps_author(store, provider_factory):
    identity = IdentitySession(provider_factory(), bootstrap_token="ana")
    controller = SyncController(store, identity, DraftState())
    controller.draft.set_title("ERP MIGRATION")

    doc_id = await controller.save()

    assert store.documents[doc_id].author == "user-ana"


@pytest.mark.asyncio
async def test_draft_replaced_during_create_is_not_bound(store, controller, waiter):
    gate = asyncio.Event()
    create = store.create

    async def gated_create(data):
        await gate.wait()
        return await create(data)

    store.create = gated_create
    _fill_erp_migration(controller.draft)

    pending = asyncio.create_task(controller.save())
    await waiter(lambda: controller.is_saving)
    controller.new_document()
    gate.set()
    doc_id = await pending

    assert doc_id in store.documents
    assert controller.draft.status is DraftStatus.UNBOUND
    assert controller.draft.tema_central == ""


# ── delete ──


@pytest.mark.asyncio
async def test_delete_active_document_resets_draft(store, identity):
    controller = SyncController(store, identity, DraftState(min_rows=2))
    _fill_erp_migration(controller.draft)
    doc_id = await controller.save()

    await controller.delete(doc_id)

    draft = controller.draft
    assert doc_id not in store.documents
    assert draft.status is DraftStatus.UNBOUND
    assert draft.tema_central == ""
    assert len(draft.acesso_rows) == 2
    assert len(draft.qualidade_rows) == 2
    assert all(r.variavel == "" for r in draft.acesso_rows + draft.qualidade_rows)


@pytest.mark.asyncio
async def test_delete_other_document_keeps_draft(store, controller):
    other = await store.create(
        DocumentWrite(tema_central="OTHER", acesso_rows=(), qualidade_rows=(), author="x")
    )
    _fill_erp_migration(controller.draft)
    doc_id = await controller.save()

    await controller.delete(other)

    assert controller.draft.document_id == doc_id
    assert controller.draft.tema_central == "ERP MIGRATION"


@pytest.mark.asyncio
async def test_delete_of_missing_document_succeeds(store, controller):
    await controller.delete("doc-404")

    assert ("delete", "doc-404") in store.calls


@pytest.mark.asyncio
async def test_failed_delete_leaves_draft_bound(store, controller):
    _fill_erp_migration(controller.draft)
    doc_id = await controller.save()
    store.fail_next("delete")

    with pytest.raises(StoreWriteError):
        await controller.delete(doc_id)

    assert controller.draft.document_id == doc_id
    assert doc_id in store.documents


# ── load ──


@pytest.mark.asyncio
async def test_load_missing_document_raises(controller):
    with pytest.raises(EntityNotFoundError):
        await controller.load("doc-404")

    assert controller.draft.status is DraftStatus.UNBOUND


@pytest.mark.asyncio
async def test_load_prefers_mirrored_snapshot(store, controller, feed, waiter):
    doc_id = await store.create(
        DocumentWrite(tema_central="MIRRORED", acesso_rows=(), qualidade_rows=(), author="x")
    )
    await controller.attach()
    await waiter(lambda: feed.snapshot is not None)

    await controller.load(doc_id)

    assert controller.draft.tema_central == "MIRRORED"
    assert ("get", doc_id) not in store.calls
    await controller.detach()


@pytest.mark.asyncio
async def test_new_document_discards_binding(controller):
    _fill_erp_migration(controller.draft)
    await controller.save()

    controller.new_document()

    assert controller.draft.status is DraftStatus.UNBOUND


# ── reconcile ──


@pytest.mark.asyncio
async def test_remote_delete_of_bound_document_resets_draft(
    store, controller, feed, client_factory, waiter
):
    _fill_erp_migration(controller.draft)
    doc_id = await controller.save()
    await controller.attach()
    await waiter(lambda: feed.snapshot is not None and doc_id in feed.snapshot)

    other = client_factory(store, "user-b")
    await other.delete(doc_id)
    await waiter(lambda: not controller.draft.is_bound)

    assert controller.draft.tema_central == ""
    await controller.detach()


def test_reconcile_ignores_document_not_yet_delivered(controller):
    controller.draft.set_title("JUST CREATED")
    controller.draft.bind("doc-new")

    controller.reconcile(CollectionSnapshot())

    assert controller.draft.document_id == "doc-new"
    assert controller.draft.tema_central == "JUST CREATED"


def test_reconcile_keeps_draft_while_document_present(controller):
    document = SurveyDocument(id="doc-1", tema_central="PRESENT")
    controller.draft.load(document)

    controller.reconcile(CollectionSnapshot.from_documents({"doc-1": document}))
    controller.reconcile(CollectionSnapshot.from_documents({"doc-1": document}))

    assert controller.draft.document_id == "doc-1"


@pytest.mark.asyncio
async def test_attach_requires_feed(store, identity):
    controller = SyncController(store, identity, DraftState())

    with pytest.raises(RuntimeError):
        await controller.attach()


# ── two clients ──


@pytest.mark.asyncio
async def test_last_write_wins_between_clients(store, controller, client_factory):
    _fill_erp_migration(controller.draft)
    doc_id = await controller.save()

    second = client_factory(store, "user-b")
    await second.load(doc_id)
    second.draft.set_title("ERP MIGRATION V2")
    await second.save()

    loaded = await controller.load(doc_id)

    assert loaded.tema_central == "ERP MIGRATION V2"
    assert loaded.author == "user-b"
    assert loaded.acesso_rows[0].variavel == "Pedidos"
    assert controller.draft.tema_central == "ERP MIGRATION V2"
    assert _write_ops(store) == ["create", "replace"]


# ── write ordering and dirty tracking ──


@pytest.mark.asyncio
async def test_save_queued_behind_delete_does_not_write_blank_draft(store, controller):
    _fill_erp_migration(controller.draft)
    doc_id = await controller.save()
    delete = store.delete

    async def slow_delete(document_id):
        await asyncio.sleep(0.01)
        await delete(document_id)

    store.delete = slow_delete

    results = await asyncio.gather(
        controller.delete(doc_id), controller.save(), return_exceptions=True
    )

    assert results[0] is None
    assert isinstance(results[1], ValidationError)
    assert _write_ops(store) == ["create"]
    assert store.documents == {}
    assert controller.draft.status is DraftStatus.UNBOUND


@pytest.mark.asyncio
async def test_successful_saves_clear_dirty(controller):
    _fill_erp_migration(controller.draft)
    assert controller.draft.dirty

    await controller.save()
    assert not controller.draft.dirty

    controller.draft.set_title("ERP MIGRATION V2")
    await controller.save()
    assert not controller.draft.dirty


@pytest.mark.asyncio
async def test_edits_made_during_save_stay_dirty(store, controller, waiter):
    _fill_erp_migration(controller.draft)
    await controller.save()
    gate = asyncio.Event()
    replace = store.replace

    async def gated_replace(document_id, data):
        await gate.wait()
        await replace(document_id, data)

    store.replace = gated_replace
    controller.draft.set_title("SAVED TITLE")

    pending = asyncio.create_task(controller.save())
    await waiter(lambda: controller.is_saving)
    controller.draft.set_title("TYPED DURING SAVE")
    gate.set()
    doc_id = await pending

    assert store.documents[doc_id].tema_central == "SAVED TITLE"
    assert controller.draft.dirty


@pytest.mark.asyncio
async def test_failed_save_keeps_dirty(store, controller):
    _fill_erp_migration(controller.draft)
    store.fail_next("create")

    with pytest.raises(StoreWriteError):
        await controller.save()

    assert controller.draft.dirty


@pytest.mark.asyncio
async def test_loaded_document_is_detached_from_snapshot(store, controller, feed, waiter):
    doc_id = await store.create(
        DocumentWrite(
            tema_central="MIRRORED",
            acesso_rows=(Row(id=1, variavel="Pedidos"),),
            qualidade_rows=(),
            author="x",
        )
    )
    await controller.attach()
    await waiter(lambda: feed.snapshot is not None)

    loaded = await controller.load(doc_id)
    loaded.tema_central = "MUTATED"
    loaded.acesso_rows[0].variavel = "MUTATED"

    mirrored = feed.snapshot.get(doc_id)
    assert mirrored.tema_central == "MIRRORED"
    assert mirrored.acesso_rows[0].variavel == "Pedidos"
    await controller.detach()
