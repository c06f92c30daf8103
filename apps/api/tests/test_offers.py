"""
Offer matching: requests, clinic offers and the single acceptance.
"""
import threading
import time
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import OperationalError, connection
from rest_framework import status

from apps.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from apps.core.models import AuditLog
from apps.offers import services
from apps.offers.models import Offer, OfferLine, OfferRequest
from apps.orders.models import Order


pytestmark = pytest.mark.django_db


def _item_ids(plan):
    return [str(item.id) for item in plan.items.all()]


class TestOpenOfferRequest:

    def test_patient_opens_request(self, patient_client, plan):
        response = patient_client.post('/api/v1/offer-requests/', {
            'plan_id': str(plan.id),
            'selected_item_ids': _item_ids(plan)[:1],
            'preferred_city': 'Moscow',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body['status'] == 'open'
        assert body['selected_item_ids'] == _item_ids(plan)[:1]
        assert body['preferred_city'] == 'Moscow'
        assert AuditLog.objects.filter(action='open_offer_request', entity_id=body['id']).exists()

    def test_preferences_default_from_profile(self, patient_caller, patient, plan):
        patient.preferred_city = 'Kazan'
        patient.preferred_price_segment = 'premium'
        patient.save()

        offer_request = services.open_offer_request(
            patient_caller, plan.id, _item_ids(plan), preferences={'preferred_district': ''}
        )

        assert offer_request.preferred_city == 'Kazan'
        assert offer_request.preferred_district == ''
        assert offer_request.preferred_price_segment == 'premium'

    def test_empty_selection_rejected(self, patient_caller, plan):
        with pytest.raises(ValidationError):
            services.open_offer_request(patient_caller, plan.id, [])

        assert OfferRequest.objects.count() == 0

    def test_items_of_another_plan_rejected(self, patient_caller, plan, completed_study, make_plan):
        newer = make_plan(completed_study, version=2)
        foreign_id = str(newer.items.first().id)

        with pytest.raises(ValidationError) as exc_info:
            services.open_offer_request(patient_caller, plan.id, _item_ids(plan) + [foreign_id])

        assert exc_info.value.details == {'unknown_item_ids': [foreign_id]}
        assert OfferRequest.objects.count() == 0

    def test_foreign_plan_is_not_found(self, other_patient_client, plan):
        response = other_patient_client.post('/api/v1/offer-requests/', {
            'plan_id': str(plan.id),
            'selected_item_ids': _item_ids(plan),
        }, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_invalid_price_segment_rejected(self, patient_caller, plan):
        with pytest.raises(ValidationError):
            services.open_offer_request(
                patient_caller, plan.id, _item_ids(plan), preferences={'preferred_price_segment': 'luxury'}
            )

    def test_clinic_cannot_open_request(self, manager_client, plan):
        response = manager_client.post('/api/v1/offer-requests/', {
            'plan_id': str(plan.id),
            'selected_item_ids': _item_ids(plan),
        }, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestClinicMatching:

    def test_open_requests_matching_clinic(self, manager_client, patient, plan):
        anywhere = OfferRequest.objects.create(patient=patient, plan=plan)
        same_city = OfferRequest.objects.create(patient=patient, plan=plan, preferred_city='moscow')
        OfferRequest.objects.create(patient=patient, plan=plan, preferred_city='Kazan')
        OfferRequest.objects.create(patient=patient, plan=plan, preferred_price_segment='economy')
        OfferRequest.objects.create(patient=patient, plan=plan, status='closed')

        response = manager_client.get('/api/v1/offer-requests/')

        assert response.status_code == status.HTTP_200_OK
        assert {r['id'] for r in response.json()} == {str(anywhere.id), str(same_city.id)}

    def test_clinic_sees_open_request_detail(self, doctor_client, offer_request):
        response = doctor_client.get(f'/api/v1/offer-requests/{offer_request.id}/')
        assert response.status_code == status.HTTP_200_OK

    def test_closed_request_hidden_from_uninvolved_clinic(self, manager_caller, offer_request):
        OfferRequest.objects.filter(id=offer_request.id).update(status='closed')

        with pytest.raises(NotFoundError):
            services.get_offer_request(manager_caller, offer_request.id)


class TestSubmitOffer:

    def test_submit_with_lines(self, manager_client, clinic, offer_request, make_pricelist_item):
        filling = make_pricelist_item(clinic, 'THER-FILL')
        extraction = make_pricelist_item(
            clinic, 'SURG-EXTR', specialty='surgery', procedure_name='Extraction',
            price_from='3000.00', price_to='5000.00',
        )
        plan_item = offer_request.selected_items.get(procedure_code='THER-FILL')

        response = manager_client.post('/api/v1/offers/', {
            'offer_request_id': str(offer_request.id),
            'estimated_days': 14,
            'lines': [
                {'pricelist_item_id': str(filling.id), 'plan_item_id': str(plan_item.id), 'price': '5000.00'},
                {'pricelist_item_id': str(extraction.id)},
            ],
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        offer = Offer.objects.get(id=response.data['id'])
        assert offer.status == 'pending'
        assert offer.total_price == Decimal('8000.00')
        assert offer.lines.count() == 2
        assert offer.lines.get(procedure_code='THER-FILL').plan_item_id == plan_item.id

    def test_total_required_without_lines(self, manager_caller, offer_request):
        with pytest.raises(ValidationError):
            services.submit_offer(manager_caller, offer_request.id, {'estimated_days': 3})

    def test_line_price_outside_range_rejected(self, manager_caller, clinic, offer_request, make_pricelist_item):
        filling = make_pricelist_item(clinic)

        with pytest.raises(ValidationError):
            services.submit_offer(manager_caller, offer_request.id, {
                'lines': [{'pricelist_item_id': str(filling.id), 'price': '9000.00'}],
            })

        assert Offer.objects.count() == 0

    def test_line_from_other_clinic_pricelist_rejected(self, manager_caller, other_clinic, offer_request,
                                                       make_pricelist_item):
        foreign = make_pricelist_item(other_clinic)

        with pytest.raises(ValidationError):
            services.submit_offer(manager_caller, offer_request.id, {
                'lines': [{'pricelist_item_id': str(foreign.id)}],
            })

    def test_resubmit_replaces_pending_offer(self, manager_caller, clinic, offer_request, make_pricelist_item):
        filling = make_pricelist_item(clinic)
        first = services.submit_offer(manager_caller, offer_request.id, {
            'lines': [{'pricelist_item_id': str(filling.id)}],
        })

        second = services.submit_offer(manager_caller, offer_request.id, {
            'total_price': '3500.00',
            'discount_percent': '10',
        })

        assert second.id == first.id
        assert Offer.objects.filter(offer_request=offer_request).count() == 1
        second.refresh_from_db()
        assert second.total_price == Decimal('3500.00')
        assert second.discount_percent == Decimal('10.00')
        assert not OfferLine.objects.filter(offer=second).exists()

    def test_doctor_cannot_submit(self, doctor_client, offer_request):
        response = doctor_client.post('/api/v1/offers/', {
            'offer_request_id': str(offer_request.id),
            'total_price': '1000.00',
        }, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_inactive_clinic_cannot_submit(self, manager_caller, clinic, offer_request):
        clinic.is_active = False
        clinic.save()

        with pytest.raises(ForbiddenError):
            services.submit_offer(manager_caller, offer_request.id, {'total_price': '1000.00'})

    def test_closed_request_rejects_offers(self, manager_client, offer_request):
        OfferRequest.objects.filter(id=offer_request.id).update(status='closed')

        response = manager_client.post('/api/v1/offers/', {
            'offer_request_id': str(offer_request.id),
            'total_price': '1000.00',
        }, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error_type'] == 'invalid_state'

    @pytest.mark.parametrize('terms', [
        {'total_price': '-1'},
        {'total_price': '100', 'discount_percent': '101'},
        {'total_price': '100', 'estimated_days': 0},
    ])
    def test_invalid_terms_rejected(self, manager_caller, offer_request, terms):
        with pytest.raises(ValidationError):
            services.submit_offer(manager_caller, offer_request.id, terms)


class TestListOffers:

    def test_patient_sees_all_offers_cheapest_first(self, patient_client, offer_request, clinic, other_clinic,
                                                    make_offer):
        expensive = make_offer(offer_request, clinic, total_price='12000.00')
        cheap = make_offer(offer_request, other_clinic, total_price='9000.00')

        response = patient_client.get(f'/api/v1/offer-requests/{offer_request.id}/offers/')

        assert response.status_code == status.HTTP_200_OK
        assert [o['id'] for o in response.json()] == [str(cheap.id), str(expensive.id)]

    def test_clinic_sees_only_its_own_offer(self, manager_client, offer_request, clinic, other_clinic, make_offer):
        own = make_offer(offer_request, clinic)
        make_offer(offer_request, other_clinic)

        response = manager_client.get(f'/api/v1/offer-requests/{offer_request.id}/offers/')

        assert [o['id'] for o in response.json()] == [str(own.id)]

    def test_other_patient_gets_not_found(self, other_patient_client, offer_request):
        response = other_patient_client.get(f'/api/v1/offer-requests/{offer_request.id}/offers/')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_clinic_lists_its_offers(self, doctor_client, offer_request, clinic, other_clinic, make_offer):
        own = make_offer(offer_request, clinic)
        make_offer(offer_request, other_clinic)

        response = doctor_client.get('/api/v1/offers/')

        assert response.status_code == status.HTTP_200_OK
        assert [o['id'] for o in response.json()] == [str(own.id)]

    def test_patient_lists_own_requests(self, patient_client, other_patient_client, offer_request):
        response = patient_client.get('/api/v1/offer-requests/')

        assert [r['id'] for r in response.json()] == [str(offer_request.id)]
        assert other_patient_client.get('/api/v1/offer-requests/').json() == []


class TestAcceptOffer:

    def test_accept_creates_order_and_closes_request(self, patient_client, offer_request, clinic, other_clinic,
                                                     make_offer):
        winner = make_offer(offer_request, clinic, total_price='9500.00')
        loser = make_offer(offer_request, other_clinic)

        response = patient_client.post(f'/api/v1/offers/{winner.id}/accept/')

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body['status'] == 'new'
        assert body['offer'] == str(winner.id)
        assert body['total_price'] == '9500.00'

        winner.refresh_from_db()
        loser.refresh_from_db()
        offer_request.refresh_from_db()
        assert winner.status == 'accepted'
        assert winner.decided_at is not None
        assert loser.status == 'rejected'
        assert offer_request.status == 'closed'
        assert offer_request.closed_at is not None
        assert Order.objects.filter(offer_request=offer_request).count() == 1
        assert AuditLog.objects.filter(action='accept_offer', entity_id=winner.id).exists()

    def test_second_acceptance_conflicts(self, patient_client, offer_request, clinic, other_clinic, make_offer):
        first = make_offer(offer_request, clinic)
        second = make_offer(offer_request, other_clinic)
        patient_client.post(f'/api/v1/offers/{first.id}/accept/')

        response = patient_client.post(f'/api/v1/offers/{second.id}/accept/')

        assert response.status_code == status.HTTP_409_CONFLICT
        second.refresh_from_db()
        assert second.status == 'rejected'
        assert Order.objects.count() == 1

    def test_rejected_sibling_count_recorded_on_span(self, patient_caller, offer_request, clinic, other_clinic,
                                                     make_offer):
        winner = make_offer(offer_request, clinic)
        make_offer(offer_request, other_clinic)

        with patch('apps.offers.services.add_span_attribute') as add_attribute:
            services.accept_offer(patient_caller, winner.id)

        add_attribute.assert_called_once_with('rejected_siblings', 1)

    def test_accepting_same_offer_twice_conflicts(self, patient_caller, offer_request, clinic, make_offer):
        offer = make_offer(offer_request, clinic)
        services.accept_offer(patient_caller, offer.id)

        with pytest.raises(InvalidStateError):
            services.accept_offer(patient_caller, offer.id)

        assert Order.objects.count() == 1

    def test_rejected_offer_cannot_be_accepted(self, patient_caller, offer_request, clinic, make_offer):
        offer = make_offer(offer_request, clinic, status='rejected')

        with pytest.raises(InvalidStateError):
            services.accept_offer(patient_caller, offer.id)

        offer_request.refresh_from_db()
        assert offer_request.status == 'open'

    def test_concurrent_winner_caught_by_constraint(self, patient_caller, offer_request, clinic, other_clinic,
                                                    make_offer):
        # A concurrent acceptance committed without the request row being closed yet
        make_offer(offer_request, clinic, status='accepted')
        pending = make_offer(offer_request, other_clinic)

        with pytest.raises(ConflictError):
            services.accept_offer(patient_caller, pending.id)

        pending.refresh_from_db()
        offer_request.refresh_from_db()
        assert pending.status == 'pending'
        assert offer_request.status == 'open'
        assert Order.objects.count() == 0

    def test_other_patient_cannot_accept(self, other_patient_client, offer_request, clinic, make_offer):
        offer = make_offer(offer_request, clinic)

        response = other_patient_client.post(f'/api/v1/offers/{offer.id}/accept/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        offer.refresh_from_db()
        assert offer.status == 'pending'

    def test_clinic_cannot_accept(self, manager_client, offer_request, clinic, make_offer):
        offer = make_offer(offer_request, clinic)

        response = manager_client.post(f'/api/v1/offers/{offer.id}/accept/')

        assert response.status_code == status.HTTP_403_FORBIDDEN


def _accept_with_retry(caller, offer_id, barrier, outcomes, attempts=50):
    """
    Accept from a worker thread, retrying transient database lock errors.

    SQLite's shared in-memory test database reports a concurrent writer as
    ``OperationalError: database table is locked`` instead of blocking on the
    row lock the way PostgreSQL does; a retry then observes the committed
    winner, so both backends end with a domain answer.
    """
    barrier.wait()
    try:
        for _ in range(attempts):
            try:
                outcomes[offer_id] = services.accept_offer(caller, offer_id)
                return
            except OperationalError:
                time.sleep(0.02)
            except (InvalidStateError, ConflictError) as e:
                outcomes[offer_id] = e
                return
        outcomes[offer_id] = OperationalError('database stayed locked')
    finally:
        connection.close()


@pytest.mark.django_db(transaction=True)
class TestConcurrentAcceptance:

    def test_two_simultaneous_accepts_yield_one_order(self, patient_caller, offer_request, clinic, other_clinic,
                                                      make_offer):
        first = make_offer(offer_request, clinic)
        second = make_offer(offer_request, other_clinic)
        barrier = threading.Barrier(2)
        outcomes = {}

        threads = [
            threading.Thread(target=_accept_with_retry, args=(patient_caller, offer.id, barrier, outcomes))
            for offer in (first, second)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        orders = [o for o in outcomes.values() if isinstance(o, Order)]
        errors = [o for o in outcomes.values() if not isinstance(o, Order)]
        assert len(orders) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], (InvalidStateError, ConflictError))

        assert Offer.objects.filter(offer_request=offer_request, status='accepted').count() == 1
        assert Offer.objects.filter(offer_request=offer_request, status='rejected').count() == 1
        assert Order.objects.count() == 1
        assert Order.objects.get().offer_id == orders[0].offer_id
        offer_request.refresh_from_db()
        assert offer_request.status == 'closed'
