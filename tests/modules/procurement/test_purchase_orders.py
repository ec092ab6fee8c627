from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.models import AuditLog
from src.core.config import settings
from src.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    PostingError,
    QuantityExceededError,
    ValidationError,
)
from src.modules.accounting.models import AccountsPayable
from src.modules.accounting.service import PostingEngine
from src.modules.procurement.models import PurchaseOrder, PurchaseOrderStatus
from src.modules.procurement.reconciler import QuantityReconciler
from src.modules.procurement.schemas import (
    BatchPurchaseOrderCreate,
    PurchaseOrderCreate,
    PurchaseOrderDraft,
    PurchaseOrderFilters,
    PurchaseOrderItemCreate,
    TransitionRequest,
)
from src.modules.procurement.service import PurchaseOrderService
from src.modules.sales_orders.service import SalesOrderService

YEAR = date.today().year


class FailingPostingEngine(PostingEngine):
    async def create_ap_invoice(self, po, actor):
        raise PostingError("General ledger is offline", reference=po.po_code)


async def _audit_entries(db_session: AsyncSession, resource_id: str) -> list[AuditLog]:
    result = await db_session.execute(
        select(AuditLog).where(AuditLog.resource_id == resource_id).order_by(AuditLog.id)
    )
    return list(result.scalars().all())


def _create_data(
    so_code: str, line_code: str, quantity: int = 6, price: str = "100000", **kwargs
) -> PurchaseOrderCreate:
    return PurchaseOrderCreate(
        so_code=so_code,
        supplier_name=kwargs.pop("supplier_name", "CV Sumber Rejeki"),
        items=[
            PurchaseOrderItemCreate(
                so_item_code=line_code,
                product_code="PRD-001",
                quantity=quantity,
                purchase_price=Decimal(price),
            )
        ],
        **kwargs,
    )


class TestPurchaseOrderService:
    """Submission and status transitions at service level."""

    async def _codes(self, make_sales_order) -> tuple[str, str]:
        so = await make_sales_order()
        return so.so_code, so.lines[0].so_item_code

    async def _submitted(self, db_session, make_sales_order, actor, quantity: int = 6) -> str:
        so_code, line_code = await self._codes(make_sales_order)
        po = await PurchaseOrderService(db_session).create_purchase_order(
            _create_data(so_code, line_code, quantity=quantity), actor
        )
        return po.po_code

    async def test_create_purchase_order(
        self, db_session: AsyncSession, make_sales_order, actor
    ):
        so_code, line_code = await self._codes(make_sales_order)
        po = await PurchaseOrderService(db_session).create_purchase_order(
            _create_data(so_code, line_code, quantity=6, price="125000.50", priority="high"),
            actor,
        )

        assert po.po_code == f"PO-{YEAR}-0001"
        assert po.so_code == so_code
        assert po.status == PurchaseOrderStatus.SUBMITTED.value
        assert po.priority == "high"
        assert po.submitted_by == "EMP-001"
        assert po.company_code == "CS"
        assert po.total_amount == Decimal("750003.00")
        assert len(po.items) == 1
        assert po.items[0].po_item_code == f"PO-{YEAR}-0001-01"
        assert po.items[0].product_name == "Product PRD-001"
        assert po.items[0].subtotal == Decimal("750003.00")

        entries = await _audit_entries(db_session, po.po_code)
        assert [e.action for e in entries] == ["create"]

    async def test_codes_do_not_collide_across_projects(
        self, db_session: AsyncSession, make_sales_order, actor
    ):
        so_a = await make_sales_order()
        so_b = await make_sales_order(project_code="PRJ-X")
        codes = [
            (so.so_code, so.lines[0].so_item_code) for so in (so_a, so_b)
        ]

        service = PurchaseOrderService(db_session)
        po_codes = []
        for so_code, line_code in codes:
            po = await service.create_purchase_order(_create_data(so_code, line_code), actor)
            po_codes.append(po.po_code)

        assert [so_code for so_code, _ in codes] == [f"SO-{YEAR}-0001", f"SO-PRJ-X-{YEAR}-0001"]
        assert po_codes == [f"PO-{YEAR}-0001", f"PO-PRJ-X-{YEAR}-0001"]

    async def test_quantity_exceeded_reports_remaining(
        self, db_session: AsyncSession, make_sales_order, actor
    ):
        """Line of 10 with 6 committed: a request for 5 is refused, 4 remain."""
        so_code, line_code = await self._codes(make_sales_order)
        service = PurchaseOrderService(db_session)
        await service.create_purchase_order(_create_data(so_code, line_code, quantity=6), actor)

        with pytest.raises(QuantityExceededError) as exc_info:
            await service.create_purchase_order(
                _create_data(so_code, line_code, quantity=5), actor
            )

        details = exc_info.value.details
        assert details["so_item_code"] == line_code
        assert details["product_code"] == "PRD-001"
        assert details["requested"] == 5
        assert details["remaining"] == 4
        assert exc_info.value.status_code == 400

        remaining = await QuantityReconciler(db_session).remaining(so_code, line_code, "PRD-001")
        assert remaining == 4
        total = await db_session.scalar(select(func.count()).select_from(PurchaseOrder))
        assert total == 1

    async def test_rejected_request_does_not_consume_number(
        self, db_session: AsyncSession, make_sales_order, actor
    ):
        so_code, line_code = await self._codes(make_sales_order)
        service = PurchaseOrderService(db_session)
        with pytest.raises(QuantityExceededError):
            await service.create_purchase_order(
                _create_data(so_code, line_code, quantity=11), actor
            )

        po = await service.create_purchase_order(
            _create_data(so_code, line_code, quantity=1), actor
        )
        assert po.po_code == f"PO-{YEAR}-0001"

    async def test_unknown_sales_order(self, db_session: AsyncSession, make_sales_order, actor):
        _, line_code = await self._codes(make_sales_order)
        with pytest.raises(NotFoundError):
            await PurchaseOrderService(db_session).create_purchase_order(
                _create_data("SO-MISSING", line_code), actor
            )

    async def test_blank_supplier_rejected(
        self, db_session: AsyncSession, make_sales_order, actor
    ):
        so_code, line_code = await self._codes(make_sales_order)
        with pytest.raises(ValidationError) as exc_info:
            await PurchaseOrderService(db_session).create_purchase_order(
                _create_data(so_code, line_code, supplier_name="   "), actor
            )
        assert exc_info.value.details["field"] == "supplier_name"

    async def test_first_purchase_order_flips_sales_order(
        self, db_session: AsyncSession, make_sales_order, actor
    ):
        so_code, line_code = await self._codes(make_sales_order)
        service = PurchaseOrderService(db_session)

        first = await service.create_purchase_order(
            _create_data(so_code, line_code, quantity=2), actor
        )
        refreshed = await SalesOrderService(db_session).get_sales_order(so_code)
        assert refreshed.status == "processing"

        await service.create_purchase_order(_create_data(so_code, line_code, quantity=2), actor)

        so_entries = await _audit_entries(db_session, so_code)
        # sales order creation plus exactly one status flip
        assert [e.action for e in so_entries] == ["create", "update"]
        assert so_entries[1].new_values == {"status": "processing"}
        assert [e.action for e in await _audit_entries(db_session, first.po_code)] == ["create"]

    async def test_full_approval_creates_ap_invoice(
        self, db_session: AsyncSession, make_sales_order, actor, supervisor, finance
    ):
        po_code = await self._submitted(db_session, make_sales_order, actor, quantity=10)
        service = PurchaseOrderService(db_session)

        po = await service.transition(
            po_code, TransitionRequest(action="approve_spv", notes="looks fine"), supervisor
        )
        assert po.status == "approved_spv"
        assert po.approved_by_spv == "SPV-001"
        assert po.approved_date_spv is not None
        assert po.approval_notes == "looks fine"
        assert po.ap_code is None

        po = await service.transition(po_code, TransitionRequest(action="approve_finance"), finance)
        assert po.status == "approved_finance"
        assert po.approved_by_finance == "FIN-001"
        assert po.ap_code == f"AP-{YEAR}-0001"

        payable = await db_session.scalar(
            select(AccountsPayable).where(AccountsPayable.ap_code == po.ap_code)
        )
        assert payable.po_code == po_code
        assert payable.supplier_name == "CV Sumber Rejeki"
        assert payable.amount == Decimal("1000000.00")
        assert payable.outstanding_amount == Decimal("1000000.00")
        assert payable.status == "unpaid"

        entries = await _audit_entries(db_session, po_code)
        assert [e.action for e in entries] == ["create", "approve", "approve"]
        assert entries[2].actor_code == "FIN-001"
        assert entries[2].old_values == {"status": "approved_spv"}
        assert entries[2].new_values["ap_code"] == f"AP-{YEAR}-0001"

    async def test_finance_approval_requires_supervisor(
        self, db_session: AsyncSession, make_sales_order, actor, finance
    ):
        po_code = await self._submitted(db_session, make_sales_order, actor)
        service = PurchaseOrderService(db_session)

        with pytest.raises(InvalidTransitionError):
            await service.transition(po_code, TransitionRequest(action="approve_finance"), finance)

        po = await service.get_purchase_order(po_code)
        assert po.status == "submitted"
        assert po.ap_code is None

    async def test_finance_shortcut_when_policy_allows(
        self, db_session: AsyncSession, make_sales_order, actor, finance, monkeypatch
    ):
        monkeypatch.setattr(settings, "finance_requires_spv_approval", False)
        po_code = await self._submitted(db_session, make_sales_order, actor)

        po = await PurchaseOrderService(db_session).transition(
            po_code, TransitionRequest(action="approve_finance"), finance
        )
        assert po.status == "approved_finance"
        assert po.ap_code is not None

    async def test_posting_failure_rolls_back_approval(
        self, db_session: AsyncSession, make_sales_order, actor, supervisor, finance
    ):
        po_code = await self._submitted(db_session, make_sales_order, actor)
        service = PurchaseOrderService(db_session)
        await service.transition(po_code, TransitionRequest(action="approve_spv"), supervisor)

        failing = PurchaseOrderService(db_session, posting_engine=FailingPostingEngine(db_session))
        with pytest.raises(PostingError):
            await failing.transition(po_code, TransitionRequest(action="approve_finance"), finance)

        po = await service.get_purchase_order(po_code)
        assert po.status == "approved_spv"
        assert po.approved_by_finance is None
        assert po.ap_code is None
        assert await db_session.scalar(select(func.count()).select_from(AccountsPayable)) == 0
        assert [e.action for e in await _audit_entries(db_session, po_code)] == [
            "create",
            "approve",
        ]

    async def test_reject_requires_reason(
        self, db_session: AsyncSession, make_sales_order, actor, supervisor
    ):
        po_code = await self._submitted(db_session, make_sales_order, actor)
        service = PurchaseOrderService(db_session)

        with pytest.raises(ValidationError) as exc_info:
            await service.transition(
                po_code, TransitionRequest(action="reject", rejection_reason="  "), supervisor
            )
        assert exc_info.value.details["field"] == "rejection_reason"

        po = await service.transition(
            po_code,
            TransitionRequest(action="reject", rejection_reason="Price too high"),
            supervisor,
        )
        assert po.status == "rejected"
        assert po.rejected_by == "SPV-001"
        assert po.rejection_reason == "Price too high"
        assert po.ap_code is None

        entries = await _audit_entries(db_session, po_code)
        assert [e.action for e in entries] == ["create", "reject"]
        assert entries[1].notes == "Price too high"

    async def test_rejected_purchase_order_cannot_move_again(
        self, db_session: AsyncSession, make_sales_order, actor, supervisor
    ):
        po_code = await self._submitted(db_session, make_sales_order, actor)
        service = PurchaseOrderService(db_session)
        await service.transition(
            po_code, TransitionRequest(action="reject", rejection_reason="Duplicate"), supervisor
        )

        for action in ("approve_spv", "approve_finance", "reject"):
            with pytest.raises(InvalidTransitionError):
                await service.transition(
                    po_code,
                    TransitionRequest(action=action, rejection_reason="again"),
                    supervisor,
                )

    async def test_rejection_releases_quantity(
        self, db_session: AsyncSession, make_sales_order, actor, supervisor
    ):
        so_code, line_code = await self._codes(make_sales_order)
        service = PurchaseOrderService(db_session)
        po = await service.create_purchase_order(
            _create_data(so_code, line_code, quantity=10), actor
        )
        await service.transition(
            po.po_code,
            TransitionRequest(action="reject", rejection_reason="Wrong supplier"),
            supervisor,
        )

        replacement = await service.create_purchase_order(
            _create_data(so_code, line_code, quantity=10), actor
        )
        assert replacement.status == "submitted"

    async def test_pay_action_goes_through_payments(
        self, db_session: AsyncSession, make_sales_order, actor
    ):
        po_code = await self._submitted(db_session, make_sales_order, actor)
        with pytest.raises(ValidationError) as exc_info:
            await PurchaseOrderService(db_session).transition(
                po_code, TransitionRequest(action="pay"), actor
            )
        assert exc_info.value.details["field"] == "action"

    async def test_transition_unknown_purchase_order(self, db_session: AsyncSession, supervisor):
        with pytest.raises(NotFoundError):
            await PurchaseOrderService(db_session).transition(
                "PO-NOPE", TransitionRequest(action="approve_spv"), supervisor
            )

    async def test_soft_delete_releases_quantity(
        self, db_session: AsyncSession, make_sales_order, actor
    ):
        so_code, line_code = await self._codes(make_sales_order)
        service = PurchaseOrderService(db_session)
        po = await service.create_purchase_order(
            _create_data(so_code, line_code, quantity=10), actor
        )
        po_code = po.po_code

        await service.soft_delete(po_code, actor)

        remaining = await QuantityReconciler(db_session).remaining(so_code, line_code, "PRD-001")
        assert remaining == 10
        with pytest.raises(NotFoundError):
            await service.get_purchase_order(po_code)
        deleted = await service.get_purchase_order(po_code, include_deleted=True)
        assert deleted.is_deleted is True
        assert all(item.is_deleted for item in deleted.items)
        assert [e.action for e in await _audit_entries(db_session, po_code)] == [
            "create",
            "delete",
        ]

    async def test_soft_delete_refused_after_approval(
        self, db_session: AsyncSession, make_sales_order, actor, supervisor
    ):
        po_code = await self._submitted(db_session, make_sales_order, actor)
        service = PurchaseOrderService(db_session)
        await service.transition(po_code, TransitionRequest(action="approve_spv"), supervisor)

        with pytest.raises(ValidationError):
            await service.soft_delete(po_code, actor)

    async def test_version_increments_on_each_transition(
        self, db_session: AsyncSession, make_sales_order, actor, supervisor, finance
    ):
        po_code = await self._submitted(db_session, make_sales_order, actor)
        service = PurchaseOrderService(db_session)
        assert (await service.get_purchase_order(po_code)).version == 1

        po = await service.transition(po_code, TransitionRequest(action="approve_spv"), supervisor)
        assert po.version == 2
        po = await service.transition(po_code, TransitionRequest(action="approve_finance"), finance)
        assert po.version == 3

    async def test_list_purchase_orders(self, db_session: AsyncSession, make_sales_order, actor):
        so_code, line_code = await self._codes(make_sales_order)
        service = PurchaseOrderService(db_session)
        await service.create_purchase_order(_create_data(so_code, line_code, quantity=1), actor)
        await service.create_purchase_order(
            _create_data(so_code, line_code, quantity=1, supplier_name="PT Baja Prima"), actor
        )

        pos, total = await service.list_purchase_orders(PurchaseOrderFilters(search="baja"))
        assert total == 1
        assert pos[0].supplier_name == "PT Baja Prima"

        pos, total = await service.list_purchase_orders(
            PurchaseOrderFilters(so_code=so_code, status="submitted")
        )
        assert total == 2


class TestBatchCreation:
    """Several supplier forms submitted at once."""

    def _draft(self, supplier: str, line, quantity: int) -> PurchaseOrderDraft:
        return PurchaseOrderDraft(
            supplier_name=supplier,
            items=[
                PurchaseOrderItemCreate(
                    so_item_code=line.so_item_code,
                    product_code=line.product_code,
                    quantity=quantity,
                    purchase_price=Decimal("1000"),
                )
            ],
        )

    async def test_one_purchase_order_per_supplier(
        self, db_session: AsyncSession, make_sales_order, actor
    ):
        so = await make_sales_order([("PRD-001", 10, "1500"), ("PRD-002", 5, "3000")])
        first, second = so.lines
        data = BatchPurchaseOrderCreate(
            so_code=so.so_code,
            orders=[
                self._draft("CV Sumber Rejeki", first, 4),
                self._draft("PT Baja Prima", second, 5),
                self._draft("cv sumber rejeki ", first, 3),
            ],
        )

        pos = await PurchaseOrderService(db_session).create_batch(data, actor)

        assert len(pos) == 2
        by_supplier = {po.supplier_name: po for po in pos}
        assert sum(i.quantity for i in by_supplier["CV Sumber Rejeki"].items) == 7
        assert len(by_supplier["CV Sumber Rejeki"].items) == 2
        assert by_supplier["PT Baja Prima"].total_amount == Decimal("5000.00")

    async def test_batch_is_validated_jointly(
        self, db_session: AsyncSession, make_sales_order, actor
    ):
        so = await make_sales_order()
        line = so.lines[0]
        data = BatchPurchaseOrderCreate(
            so_code=so.so_code,
            orders=[
                self._draft("CV Sumber Rejeki", line, 6),
                self._draft("PT Baja Prima", line, 6),
            ],
        )

        with pytest.raises(QuantityExceededError) as exc_info:
            await PurchaseOrderService(db_session).create_batch(data, actor)
        assert exc_info.value.details["requested"] == 12
        assert exc_info.value.details["remaining"] == 10

        total = await db_session.scalar(select(func.count()).select_from(PurchaseOrder))
        assert total == 0


class TestPurchaseOrderEndpoints:
    """HTTP surface of purchase orders."""

    async def _create_so(self, client: AsyncClient, headers: dict, quantity: int = 10) -> dict:
        response = await client.post(
            "/api/v1/sales-orders",
            headers=headers,
            json={
                "customer_name": "PT Maju Jaya",
                "lines": [
                    {
                        "product_code": "PRD-001",
                        "product_name": "Steel pipe 2in",
                        "quantity": quantity,
                        "unit_price": "150000",
                    }
                ],
            },
        )
        assert response.status_code == 201
        return response.json()["data"]

    def _po_payload(self, so: dict, quantity: int) -> dict:
        return {
            "so_code": so["so_code"],
            "supplier_name": "CV Sumber Rejeki",
            "items": [
                {
                    "so_item_code": so["lines"][0]["so_item_code"],
                    "product_code": "PRD-001",
                    "quantity": quantity,
                    "purchase_price": "100000",
                }
            ],
        }

    async def test_create_and_approve(self, client: AsyncClient, auth_headers):
        so = await self._create_so(client, auth_headers)
        response = await client.post(
            "/api/v1/procurement/purchase-orders",
            headers=auth_headers,
            json=self._po_payload(so, 6),
        )
        assert response.status_code == 201
        po = response.json()["data"]
        assert po["status"] == "submitted"
        assert po["total_amount"] == "600000.00"
        assert set(po["available_actions"]) == {"approve_spv", "reject"}

        spv_headers = {"X-Actor-Code": "SPV-001", "X-Actor-Name": "Budi Supervisor"}
        response = await client.post(
            f"/api/v1/procurement/purchase-orders/{po['po_code']}/transition",
            headers=spv_headers,
            json={"action": "approve_spv"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "approved_spv"
        assert response.json()["data"]["approved_by_spv"] == "SPV-001"

        response = await client.get(
            f"/api/v1/procurement/purchase-orders/{po['po_code']}", headers=auth_headers
        )
        assert response.json()["data"]["available_actions"] == ["approve_finance", "reject"]

    async def test_quantity_exceeded_envelope(self, client: AsyncClient, auth_headers):
        so = await self._create_so(client, auth_headers)
        await client.post(
            "/api/v1/procurement/purchase-orders",
            headers=auth_headers,
            json=self._po_payload(so, 6),
        )

        response = await client.post(
            "/api/v1/procurement/purchase-orders",
            headers=auth_headers,
            json=self._po_payload(so, 5),
        )
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["details"]["remaining"] == 4
        assert body["details"]["requested"] == 5
        assert body["errors"][0]["field"] == "items"

    async def test_invalid_transition_is_409(self, client: AsyncClient, auth_headers):
        so = await self._create_so(client, auth_headers)
        po = (
            await client.post(
                "/api/v1/procurement/purchase-orders",
                headers=auth_headers,
                json=self._po_payload(so, 1),
            )
        ).json()["data"]

        response = await client.post(
            f"/api/v1/procurement/purchase-orders/{po['po_code']}/transition",
            headers=auth_headers,
            json={"action": "approve_finance"},
        )
        assert response.status_code == 409
        assert response.json()["details"] == {
            "current_status": "submitted",
            "action": "approve_finance",
        }

    async def test_unknown_action_is_422(self, client: AsyncClient, auth_headers):
        so = await self._create_so(client, auth_headers)
        po = (
            await client.post(
                "/api/v1/procurement/purchase-orders",
                headers=auth_headers,
                json=self._po_payload(so, 1),
            )
        ).json()["data"]

        response = await client.post(
            f"/api/v1/procurement/purchase-orders/{po['po_code']}/transition",
            headers=auth_headers,
            json={"action": "archive"},
        )
        assert response.status_code == 422

    async def test_missing_items_is_422(self, client: AsyncClient, auth_headers):
        so = await self._create_so(client, auth_headers)
        payload = self._po_payload(so, 1)
        payload["items"] = []
        response = await client.post(
            "/api/v1/procurement/purchase-orders", headers=auth_headers, json=payload
        )
        assert response.status_code == 422

    async def test_requires_actor(self, client: AsyncClient):
        response = await client.get("/api/v1/procurement/purchase-orders")
        assert response.status_code == 401

    async def test_batch_endpoint(self, client: AsyncClient, auth_headers):
        so = await self._create_so(client, auth_headers)
        line_code = so["lines"][0]["so_item_code"]
        response = await client.post(
            "/api/v1/procurement/purchase-orders/batch",
            headers=auth_headers,
            json={
                "so_code": so["so_code"],
                "orders": [
                    {
                        "supplier_name": "CV Sumber Rejeki",
                        "items": [
                            {
                                "so_item_code": line_code,
                                "product_code": "PRD-001",
                                "quantity": 4,
                                "purchase_price": "1000",
                            }
                        ],
                    },
                    {
                        "supplier_name": "PT Baja Prima",
                        "items": [
                            {
                                "so_item_code": line_code,
                                "product_code": "PRD-001",
                                "quantity": 6,
                                "purchase_price": "1000",
                            }
                        ],
                    },
                ],
            },
        )
        assert response.status_code == 201
        assert len(response.json()["data"]) == 2

    async def test_list_and_delete(self, client: AsyncClient, auth_headers):
        so = await self._create_so(client, auth_headers)
        po = (
            await client.post(
                "/api/v1/procurement/purchase-orders",
                headers=auth_headers,
                json=self._po_payload(so, 2),
            )
        ).json()["data"]

        response = await client.get(
            "/api/v1/procurement/purchase-orders",
            headers=auth_headers,
            params={"so_code": so["so_code"]},
        )
        assert response.json()["data"]["total"] == 1

        response = await client.delete(
            f"/api/v1/procurement/purchase-orders/{po['po_code']}", headers=auth_headers
        )
        assert response.status_code == 200

        response = await client.get(
            f"/api/v1/procurement/purchase-orders/{po['po_code']}", headers=auth_headers
        )
        assert response.status_code == 404
