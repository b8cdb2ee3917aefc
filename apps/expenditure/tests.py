"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Unit tests for the expenditure approval engine, workflow
             rules, notifications and API.
-------------------------------------------------------------------------
"""
import json
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from apps.core.events import EventType
from apps.core.exceptions import (
    BudgetExceededException,
    DuplicateBillException,
    InactiveRecordException,
    RemarksRequiredException,
    SelfApprovalException,
    UnauthorizedRoleException,
    WorkflowTransitionException,
    YearClosedException,
    YearLockedException,
)
from apps.core.models import AuditLog, Notification, NotificationCategory
from apps.budgeting import lifecycle
from apps.budgeting.services import deactivate_department
from apps.budgeting.tests import BudgetFixtureMixin
from apps.expenditure.models import ApprovalDecision, ApprovalStep, Expenditure, ExpenditureStatus
from apps.expenditure.services import (
    apply_decision,
    get_expenditure_history,
    resubmit_expenditure,
    submit_expenditure,
)
from apps.expenditure.workflows import (
    authorized_roles,
    derive_status,
    get_user_allowed_actions,
    validate_decision,
)
from apps.users.models import UserRole


VERIFY = ApprovalDecision.VERIFY
APPROVE = ApprovalDecision.APPROVE
REJECT = ApprovalDecision.REJECT


class WorkflowRuleTests(TestCase):
    """Tests for the pure workflow functions."""

    def test_derive_status_from_decisions(self) -> None:
        self.assertEqual(derive_status([]), ExpenditureStatus.PENDING)
        self.assertEqual(derive_status([VERIFY]), ExpenditureStatus.VERIFIED)
        self.assertEqual(derive_status([VERIFY, APPROVE]), ExpenditureStatus.APPROVED)
        self.assertEqual(derive_status([REJECT]), ExpenditureStatus.REJECTED)
        self.assertEqual(derive_status([VERIFY, REJECT]), ExpenditureStatus.REJECTED)

    def test_derive_status_rejects_invalid_paths(self) -> None:
        for decisions in ([APPROVE], [VERIFY, VERIFY], [VERIFY, APPROVE, APPROVE], [REJECT, VERIFY]):
            with self.subTest(decisions=decisions):
                with self.assertRaises(WorkflowTransitionException):
                    derive_status(decisions)

    def test_authorized_roles(self) -> None:
        self.assertEqual(authorized_roles(ExpenditureStatus.PENDING, VERIFY), [UserRole.HOD])
        self.assertEqual(
            authorized_roles(ExpenditureStatus.VERIFIED, APPROVE),
            [UserRole.VICE_PRINCIPAL, UserRole.PRINCIPAL]
        )
        self.assertIn(UserRole.HOD, authorized_roles(ExpenditureStatus.PENDING, REJECT))
        self.assertNotIn(UserRole.HOD, authorized_roles(ExpenditureStatus.VERIFIED, REJECT))
        self.assertIn(UserRole.OFFICE, authorized_roles(ExpenditureStatus.VERIFIED, REJECT))

    def test_validate_decision_approval_limit(self) -> None:
        is_valid, error = validate_decision(
            ExpenditureStatus.VERIFIED, APPROVE, UserRole.VICE_PRINCIPAL, Decimal('50000.01')
        )
        self.assertFalse(is_valid)
        self.assertIn('50,000.00', str(error))

        is_valid, error = validate_decision(
            ExpenditureStatus.VERIFIED, APPROVE, UserRole.VICE_PRINCIPAL, Decimal('50000')
        )
        self.assertTrue(is_valid)
        self.assertIsNone(error)

    def test_validate_decision_checks_transition_first(self) -> None:
        is_valid, error = validate_decision(ExpenditureStatus.APPROVED, APPROVE, UserRole.PRINCIPAL)
        self.assertFalse(is_valid)
        self.assertIn("'approved'", str(error))

    @override_settings(CBMS_APPROVAL_CHAIN={'approve': ['principal']}, CBMS_APPROVAL_LIMITS={})
    def test_configured_chain(self) -> None:
        self.assertEqual(authorized_roles(ExpenditureStatus.VERIFIED, APPROVE), [UserRole.PRINCIPAL])
        self.assertEqual(authorized_roles(ExpenditureStatus.PENDING, VERIFY), [UserRole.HOD])


class SubmissionTests(BudgetFixtureMixin, TestCase):
    """Tests for submit_expenditure."""

    def test_submit_creates_pending_bill(self) -> None:
        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill())

        self.assertEqual(expenditure.status, ExpenditureStatus.PENDING)
        self.assertEqual(expenditure.department, self.physics)
        self.assertEqual(expenditure.budget_head, self.lab)
        self.assertEqual(expenditure.financial_year, self.fy)
        self.assertEqual(expenditure.bill_amount, Decimal('30000.00'))
        self.assertEqual(expenditure.submitted_by, self.clerk)
        self.assertFalse(expenditure.spend_applied)
        self.assertEqual(expenditure.get_steps(), [])

    def test_submit_does_not_touch_spent_amount(self) -> None:
        submit_expenditure(self.clerk, self.allocation.pk, self.bill())

        self.refresh(self.allocation)
        self.assertEqual(self.allocation.spent_amount, Decimal('0.00'))

    def test_missing_fields(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            submit_expenditure(self.clerk, self.allocation.pk, {'bill_number': 'X-1'})

        self.assertIn('bill_amount', ctx.exception.message_dict)
        self.assertIn('party_name', ctx.exception.message_dict)

    def test_non_positive_amount(self) -> None:
        for amount in ('0', '-5'):
            with self.subTest(amount=amount):
                with self.assertRaises(ValidationError):
                    submit_expenditure(self.clerk, self.allocation.pk, self.bill(amount=amount))

    def test_amount_above_remaining_budget(self) -> None:
        with self.assertRaises(BudgetExceededException):
            submit_expenditure(self.clerk, self.allocation.pk, self.bill(amount='100000.01'))

    @override_settings(CBMS_BUDGET_OVERSPEND_POLICY='allow')
    def test_amount_above_remaining_budget_allowed(self) -> None:
        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill(amount='150000'))

        self.assertEqual(expenditure.status, ExpenditureStatus.PENDING)

    def test_duplicate_bill_number(self) -> None:
        submit_expenditure(self.clerk, self.allocation.pk, self.bill('INV-9'))

        with self.assertRaises(DuplicateBillException):
            submit_expenditure(self.clerk, self.allocation.pk, self.bill('INV-9'))

    def test_inactive_department(self) -> None:
        deactivate_department(self.physics.pk, self.admin)

        with self.assertRaises(InactiveRecordException):
            submit_expenditure(self.clerk, self.allocation.pk, self.bill())

    def test_locked_year_still_accepts_bills(self) -> None:
        lifecycle.lock_financial_year(self.fy.pk, self.principal)

        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill())

        self.assertEqual(expenditure.status, ExpenditureStatus.PENDING)

    def test_closed_year_refuses_bills(self) -> None:
        lifecycle.lock_financial_year(self.fy.pk)
        lifecycle.close_financial_year(self.fy.pk)

        with self.assertRaises(YearClosedException):
            submit_expenditure(self.clerk, self.allocation.pk, self.bill())


class ApprovalEngineTests(BudgetFixtureMixin, TestCase):
    """Tests for apply_decision."""

    def setUp(self):
        super().setUp()
        self.expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill())

    def test_full_approval_scenario(self) -> None:
        """Allocation 100,000, bill 30,000 verified and approved."""
        apply_decision(self.expenditure.pk, self.hod, UserRole.HOD, VERIFY)
        expenditure = apply_decision(self.expenditure.pk, self.principal, UserRole.PRINCIPAL, APPROVE)

        self.refresh(self.allocation)
        self.assertEqual(expenditure.status, ExpenditureStatus.APPROVED)
        self.assertTrue(expenditure.spend_applied)
        self.assertEqual(self.allocation.spent_amount, Decimal('30000.00'))
        self.assertEqual(self.allocation.remaining_amount, Decimal('70000.00'))
        self.assertEqual(self.allocation.utilization_percentage, 30)

    def test_steps_are_recorded_in_order(self) -> None:
        apply_decision(self.expenditure.pk, self.hod, UserRole.HOD, VERIFY, remarks='Checked')
        apply_decision(self.expenditure.pk, self.principal, UserRole.PRINCIPAL, APPROVE)

        steps = self.expenditure.get_steps()
        self.assertEqual([s.sequence for s in steps], [1, 2])
        self.assertEqual([s.decision for s in steps], [VERIFY, APPROVE])
        self.assertEqual([s.role for s in steps], [UserRole.HOD, UserRole.PRINCIPAL])
        self.assertEqual(steps[0].remarks, 'Checked')
        self.assertEqual(steps[1].actor, self.principal)

    def test_status_always_matches_steps(self) -> None:
        self.assertEqual(self.expenditure.derived_status(), self.expenditure.status)

        expenditure = apply_decision(self.expenditure.pk, self.hod, UserRole.HOD, VERIFY)
        self.assertEqual(expenditure.derived_status(), expenditure.status)

        expenditure = apply_decision(self.expenditure.pk, self.vice_principal, UserRole.VICE_PRINCIPAL, APPROVE)
        self.assertEqual(expenditure.derived_status(), expenditure.status)

    def test_replayed_approval_charges_once(self) -> None:
        apply_decision(self.expenditure.pk, self.hod, UserRole.HOD, VERIFY)
        apply_decision(self.expenditure.pk, self.principal, UserRole.PRINCIPAL, APPROVE)

        with self.assertRaises(WorkflowTransitionException):
            apply_decision(self.expenditure.pk, self.principal, UserRole.PRINCIPAL, APPROVE)

        self.refresh(self.allocation)
        self.assertEqual(self.allocation.spent_amount, Decimal('30000.00'))
        self.assertEqual(ApprovalStep.objects.filter(expenditure=self.expenditure).count(), 2)

    def test_approve_pending_bill_is_invalid(self) -> None:
        with self.assertRaises(WorkflowTransitionException):
            apply_decision(self.expenditure.pk, self.principal, UserRole.PRINCIPAL, APPROVE)

    def test_role_not_held_by_actor(self) -> None:
        with self.assertRaises(UnauthorizedRoleException):
            apply_decision(self.expenditure.pk, self.clerk, UserRole.HOD, VERIFY)

    def test_role_not_in_chain(self) -> None:
        with self.assertRaises(UnauthorizedRoleException):
            apply_decision(self.expenditure.pk, self.principal, UserRole.PRINCIPAL, VERIFY)

    def test_hod_of_other_department(self) -> None:
        with self.assertRaises(UnauthorizedRoleException):
            apply_decision(self.expenditure.pk, self.other_hod, UserRole.HOD, VERIFY)

    def test_self_approval(self) -> None:
        own_bill = submit_expenditure(self.hod, self.allocation.pk, self.bill('INV-HOD'))

        with self.assertRaises(SelfApprovalException):
            apply_decision(own_bill.pk, self.hod, UserRole.HOD, VERIFY)

    def test_vice_principal_limit(self) -> None:
        big = submit_expenditure(self.clerk, self.allocation.pk, self.bill('INV-BIG', '60000'))
        apply_decision(big.pk, self.hod, UserRole.HOD, VERIFY)

        with self.assertRaises(UnauthorizedRoleException):
            apply_decision(big.pk, self.vice_principal, UserRole.VICE_PRINCIPAL, APPROVE)

        expenditure = apply_decision(big.pk, self.principal, UserRole.PRINCIPAL, APPROVE)
        self.assertEqual(expenditure.status, ExpenditureStatus.APPROVED)

    def test_reject_requires_remarks(self) -> None:
        with self.assertRaises(RemarksRequiredException):
            apply_decision(self.expenditure.pk, self.hod, UserRole.HOD, REJECT, remarks='   ')

        self.refresh(self.expenditure)
        self.assertEqual(self.expenditure.status, ExpenditureStatus.PENDING)

    def test_office_can_reject(self) -> None:
        expenditure = apply_decision(
            self.expenditure.pk, self.office, UserRole.OFFICE, REJECT, remarks='Wrong head of account'
        )

        self.assertEqual(expenditure.status, ExpenditureStatus.REJECTED)
        self.refresh(self.allocation)
        self.assertEqual(self.allocation.spent_amount, Decimal('0.00'))

    def test_rejected_bill_is_terminal(self) -> None:
        apply_decision(self.expenditure.pk, self.hod, UserRole.HOD, REJECT, remarks='Missing receipt')

        with self.assertRaises(WorkflowTransitionException):
            apply_decision(self.expenditure.pk, self.hod, UserRole.HOD, VERIFY)

    def test_approval_beyond_remaining_rolls_back(self) -> None:
        """Two bills fit alone but not together; the second approval fails cleanly."""
        first = submit_expenditure(self.clerk, self.allocation.pk, self.bill('INV-A', '60000'))
        second = submit_expenditure(self.clerk, self.allocation.pk, self.bill('INV-B', '60000'))
        for bill in (first, second):
            apply_decision(bill.pk, self.hod, UserRole.HOD, VERIFY)
        apply_decision(first.pk, self.principal, UserRole.PRINCIPAL, APPROVE)

        with self.assertRaises(BudgetExceededException):
            apply_decision(second.pk, self.principal, UserRole.PRINCIPAL, APPROVE)

        self.refresh(self.allocation, second)
        self.assertEqual(self.allocation.spent_amount, Decimal('60000.00'))
        self.assertEqual(second.status, ExpenditureStatus.VERIFIED)
        self.assertFalse(second.spend_applied)
        self.assertEqual(len(second.get_steps()), 1)

    @override_settings(CBMS_BUDGET_OVERSPEND_POLICY='warn')
    def test_overspend_warn_policy(self) -> None:
        big = submit_expenditure(self.clerk, self.allocation.pk, self.bill('INV-BIG', '120000'))
        apply_decision(big.pk, self.hod, UserRole.HOD, VERIFY)
        apply_decision(big.pk, self.principal, UserRole.PRINCIPAL, APPROVE)

        self.refresh(self.allocation)
        self.assertEqual(self.allocation.spent_amount, Decimal('120000.00'))
        self.assertEqual(self.allocation.remaining_amount, Decimal('-20000.00'))
        self.assertEqual(
            self.allocation.allocated_amount - self.allocation.spent_amount,
            self.allocation.remaining_amount
        )

    def test_locked_year_allows_decisions(self) -> None:
        lifecycle.lock_financial_year(self.fy.pk, self.principal)

        expenditure = apply_decision(self.expenditure.pk, self.hod, UserRole.HOD, VERIFY)

        self.assertEqual(expenditure.status, ExpenditureStatus.VERIFIED)

    @override_settings(CBMS_BLOCK_DECISIONS_WHEN_LOCKED=True)
    def test_locked_year_blocks_decisions_when_configured(self) -> None:
        lifecycle.lock_financial_year(self.fy.pk, self.principal)

        with self.assertRaises(YearLockedException):
            apply_decision(self.expenditure.pk, self.hod, UserRole.HOD, VERIFY)

    def test_closed_year_refuses_decisions(self) -> None:
        apply_decision(self.expenditure.pk, self.hod, UserRole.HOD, VERIFY)
        apply_decision(self.expenditure.pk, self.principal, UserRole.PRINCIPAL, APPROVE)
        lifecycle.lock_financial_year(self.fy.pk)
        lifecycle.close_financial_year(self.fy.pk)

        with self.assertRaises(YearClosedException):
            apply_decision(self.expenditure.pk, self.principal, UserRole.PRINCIPAL, APPROVE)

    def test_allowed_actions(self) -> None:
        self.assertEqual(get_user_allowed_actions(self.hod, self.expenditure), [VERIFY, REJECT])
        self.assertEqual(get_user_allowed_actions(self.other_hod, self.expenditure), [])
        self.assertEqual(get_user_allowed_actions(self.principal, self.expenditure), [REJECT])
        self.assertEqual(get_user_allowed_actions(self.clerk, self.expenditure), [])


class ApprovalStepTests(BudgetFixtureMixin, TestCase):
    """Tests for the append-only approval history."""

    def setUp(self):
        super().setUp()
        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill())
        apply_decision(expenditure.pk, self.hod, UserRole.HOD, VERIFY)
        self.step = ApprovalStep.objects.get(expenditure=expenditure)

    def test_step_cannot_be_updated(self) -> None:
        self.step.remarks = 'rewritten'
        with self.assertRaises(ValueError):
            self.step.save()

    def test_step_cannot_be_deleted(self) -> None:
        with self.assertRaises(ValueError):
            self.step.delete()

    def test_bulk_update_and_delete_refused(self) -> None:
        with self.assertRaises(ValueError):
            ApprovalStep.objects.filter(pk=self.step.pk).update(remarks='x')
        with self.assertRaises(ValueError):
            ApprovalStep.objects.filter(pk=self.step.pk).delete()


class ResubmissionTests(BudgetFixtureMixin, TestCase):
    """Tests for resubmit_expenditure."""

    def setUp(self):
        super().setUp()
        self.original = submit_expenditure(self.clerk, self.allocation.pk, self.bill('INV-7', '25000'))
        apply_decision(self.original.pk, self.hod, UserRole.HOD, REJECT, remarks='Attach quotation')

    def test_resubmit_creates_new_pending_bill(self) -> None:
        new = resubmit_expenditure(
            self.original.pk, self.clerk, {'bill_amount': '24000', 'attachments': ['quotation.pdf']}
        )

        self.refresh(self.original)
        self.assertNotEqual(new.pk, self.original.pk)
        self.assertEqual(new.status, ExpenditureStatus.PENDING)
        self.assertTrue(new.is_resubmission)
        self.assertEqual(new.original_expenditure, self.original)
        self.assertEqual(new.bill_number, 'INV-7')
        self.assertEqual(new.bill_amount, Decimal('24000.00'))
        self.assertEqual(new.attachments, ['quotation.pdf'])
        self.assertEqual(self.original.status, ExpenditureStatus.REJECTED)
        self.assertEqual(self.original.bill_amount, Decimal('25000.00'))
        self.assertEqual(len(self.original.get_steps()), 1)

    def test_history_links_both_bills(self) -> None:
        new = resubmit_expenditure(self.original.pk, self.clerk, {})

        self.assertEqual(get_expenditure_history(new)['previous_submissions'], [self.original])
        self.assertEqual(get_expenditure_history(self.original)['resubmissions'], [new])

    def test_only_submitter_can_resubmit(self) -> None:
        with self.assertRaises(UnauthorizedRoleException):
            resubmit_expenditure(self.original.pk, self.hod, {})

    def test_admin_can_resubmit(self) -> None:
        new = resubmit_expenditure(self.original.pk, self.admin, {})
        self.assertEqual(new.submitted_by, self.admin)

    def test_only_rejected_bills_can_be_resubmitted(self) -> None:
        pending = submit_expenditure(self.clerk, self.allocation.pk, self.bill('INV-8'))

        with self.assertRaises(WorkflowTransitionException):
            resubmit_expenditure(pending.pk, self.clerk, {})

    def test_bill_number_blocked_while_resubmission_open(self) -> None:
        resubmit_expenditure(self.original.pk, self.clerk, {})

        with self.assertRaises(DuplicateBillException):
            submit_expenditure(self.clerk, self.allocation.pk, self.bill('INV-7'))


class NotificationTests(BudgetFixtureMixin, TestCase):
    """Tests for workflow notifications and the budget alert."""

    def notifications_for(self, user):
        return Notification.objects.filter(recipient=user)

    def test_submit_notifies_hod(self) -> None:
        with self.captureOnCommitCallbacks(execute=True):
            expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill())

        notification = self.notifications_for(self.hod).get()
        self.assertIn(expenditure.bill_number, notification.title)
        self.assertEqual(notification.link, f'/expenditure/api/expenditures/{expenditure.pk}/')
        self.assertFalse(self.notifications_for(self.other_hod).exists())
        self.assertTrue(AuditLog.objects.filter(event_type=EventType.EXPENDITURE_SUBMITTED).exists())

    def test_verify_notifies_approvers(self) -> None:
        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill())

        with self.captureOnCommitCallbacks(execute=True):
            apply_decision(expenditure.pk, self.hod, UserRole.HOD, VERIFY)

        self.assertEqual(self.notifications_for(self.principal).count(), 1)
        self.assertEqual(self.notifications_for(self.vice_principal).count(), 1)

    def test_decisions_notify_submitter(self) -> None:
        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill())

        with self.captureOnCommitCallbacks(execute=True):
            apply_decision(expenditure.pk, self.hod, UserRole.HOD, REJECT, remarks='Duplicate invoice')

        notification = self.notifications_for(self.clerk).get()
        self.assertEqual(notification.category, NotificationCategory.ALERT)
        self.assertIn('Duplicate invoice', notification.message)
        entry = AuditLog.objects.get(event_type=EventType.EXPENDITURE_REJECTED)
        self.assertEqual(entry.actor_role, UserRole.HOD)

    def test_budget_alert_when_threshold_crossed(self) -> None:
        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill(amount='95000'))
        apply_decision(expenditure.pk, self.hod, UserRole.HOD, VERIFY)

        with self.captureOnCommitCallbacks(execute=True):
            apply_decision(expenditure.pk, self.principal, UserRole.PRINCIPAL, APPROVE)

        self.assertTrue(self.notifications_for(self.office).filter(title__startswith='Budget Alert').exists())
        self.assertTrue(self.notifications_for(self.principal).filter(title__startswith='Budget Alert').exists())
        self.assertTrue(AuditLog.objects.filter(event_type=EventType.BUDGET_THRESHOLD_REACHED).exists())

    def test_no_budget_alert_below_threshold(self) -> None:
        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill(amount='10000'))
        apply_decision(expenditure.pk, self.hod, UserRole.HOD, VERIFY)

        with self.captureOnCommitCallbacks(execute=True):
            apply_decision(expenditure.pk, self.principal, UserRole.PRINCIPAL, APPROVE)

        self.assertFalse(Notification.objects.filter(title__startswith='Budget Alert').exists())

    def approve(self, number: str, amount: str) -> None:
        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill(number, amount))
        apply_decision(expenditure.pk, self.hod, UserRole.HOD, VERIFY)
        with self.captureOnCommitCallbacks(execute=True):
            apply_decision(expenditure.pk, self.principal, UserRole.PRINCIPAL, APPROVE)

    def test_approval_event_carries_threshold_crossing(self) -> None:
        self.approve('INV-001', '95000')

        entry = AuditLog.objects.get(event_type=EventType.EXPENDITURE_APPROVED)
        self.assertIs(entry.details['threshold_crossed'], True)
        self.assertEqual(Decimal(entry.details['utilization_percentage']), Decimal('95'))
        self.assertEqual(Decimal(entry.details['remaining_amount']), Decimal('5000'))

    def test_budget_alert_raised_once_per_crossing(self) -> None:
        self.approve('INV-001', '85000')
        self.assertFalse(Notification.objects.filter(title__startswith='Budget Alert').exists())

        self.approve('INV-002', '6000')
        self.approve('INV-003', '2000')

        self.assertEqual(
            self.notifications_for(self.office).filter(title__startswith='Budget Alert').count(), 1
        )
        self.assertEqual(AuditLog.objects.filter(event_type=EventType.BUDGET_THRESHOLD_REACHED).count(), 1)
        flags = [
            entry.details['threshold_crossed']
            for entry in AuditLog.objects.filter(event_type=EventType.EXPENDITURE_APPROVED).order_by('pk')
        ]
        self.assertEqual(flags, [False, True, False])


class ExpenditureApiTests(BudgetFixtureMixin, TestCase):
    """Tests for the expenditure JSON endpoints."""

    def post_json(self, url: str, data: dict):
        return self.client.post(url, data=json.dumps(data), content_type='application/json')

    def submit_via_api(self, **overrides):
        payload = {
            'allocation': self.allocation.pk,
            'bill_number': 'INV-API',
            'bill_date': '2025-08-14',
            'bill_amount': '30000',
            'party_name': 'Scientific Traders',
            'expense_details': 'Glassware',
        }
        payload.update(overrides)
        return self.post_json('/expenditure/api/expenditures/', payload)

    def test_submit_and_approve(self) -> None:
        self.client.force_login(self.clerk)
        response = self.submit_via_api()
        self.assertEqual(response.status_code, 201)
        expenditure_id = response.json()['data']['id']

        self.client.force_login(self.hod)
        response = self.post_json(f'/expenditure/api/expenditures/{expenditure_id}/decision/', {'decision': 'verify'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['status'], ExpenditureStatus.VERIFIED)

        self.client.force_login(self.principal)
        response = self.post_json(f'/expenditure/api/expenditures/{expenditure_id}/decision/', {'decision': 'approve'})
        data = response.json()['data']
        self.assertEqual(data['status'], ExpenditureStatus.APPROVED)
        self.assertEqual([s['decision'] for s in data['approval_steps']], ['verify', 'approve'])

    def test_submit_against_other_department(self) -> None:
        self.client.force_login(self.other_hod)

        response = self.submit_via_api()

        self.assertEqual(response.status_code, 403)

    def test_auditor_cannot_submit(self) -> None:
        self.client.force_login(self.auditor)

        response = self.submit_via_api()

        self.assertEqual(response.status_code, 403)

    def test_invalid_transition_error_code(self) -> None:
        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill())
        self.client.force_login(self.principal)

        response = self.post_json(f'/expenditure/api/expenditures/{expenditure.pk}/decision/', {'decision': 'approve'})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error_code'], 'ERR_INVALID_TRANSITION')

    def test_approval_queue(self) -> None:
        submit_expenditure(self.clerk, self.allocation.pk, self.bill())
        self.client.force_login(self.hod)

        response = self.client.get('/expenditure/api/expenditures/queue/')

        queue = response.json()['data']
        self.assertEqual(len(queue), 1)
        self.assertEqual(queue[0]['allowed_actions'], ['verify', 'reject'])

    def test_department_user_cannot_see_other_departments(self) -> None:
        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill())
        self.client.force_login(self.other_hod)

        response = self.client.get(f'/expenditure/api/expenditures/{expenditure.pk}/')

        self.assertEqual(response.status_code, 404)

    def test_resubmit_via_api(self) -> None:
        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill())
        apply_decision(expenditure.pk, self.hod, UserRole.HOD, REJECT, remarks='Illegible')
        self.client.force_login(self.clerk)

        response = self.post_json(f'/expenditure/api/expenditures/{expenditure.pk}/resubmit/', {'bill_amount': '29000'})

        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.json()['data']['is_resubmission'])
        self.assertEqual(Expenditure.objects.filter(status=ExpenditureStatus.PENDING).count(), 1)
