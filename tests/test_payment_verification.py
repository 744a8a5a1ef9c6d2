import base64

import pytest

from conftest import EVENT_ID, FAKE_PDF, verify_payload
from ticketing import config
from ticketing.database import ANALYTICS, BOOKINGS, ensure_indexes
from ticketing.exceptions import GatewayError
from ticketing.services import booking as booking_service
from ticketing.services.booking import BookingIssuer

pytestmark = pytest.mark.asyncio


async def count_bookings(db):
    return await db[BOOKINGS].count_documents({})


class TestSuccessfulVerification:
    async def test_creates_booking_ticket_pdf_and_email(self, client, db, gateway, mailer, render_pdf, seed_event):
        # Given
        await seed_event()

        # When
        response = await client.post('/api/razorpay/verify', json=verify_payload())

        # Then
        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['message'] == 'Payment verified and booking created successfully'
        assert body['ticket_id'] == 'TGIN-25-D1-00001'
        assert body['payment_id'] == 'pay_123'
        assert body['order_id'] == 'order_123'
        assert body['amount'] == 1500
        assert body['currency'] == 'INR'
        assert body['email_sent'] is True
        assert body['pdf_generated'] is True
        assert body['pdf_size'] == len(FAKE_PDF)
        assert body['warnings'] == []
        assert 'warning' not in body
        assert body['ticket_pdf'] == {
            'data': base64.b64encode(FAKE_PDF).decode(),
            'filename': f"Ticket_{body['booking_id']}_TGIN-25-D1-00001.pdf",
            'mimeType': 'application/pdf',
        }

        saved = await db[BOOKINGS].find_one({'payment_id': 'pay_123'})
        assert saved['id'] == body['booking_id']
        assert saved['status'] == 'confirmed'
        assert saved['ticket_id'] == 'TGIN-25-D1-00001'
        assert saved['pass_id'] == 'pass-ga'
        assert saved['customer_email'] == 'asha@example.com'
        assert saved['total_amount'] == 1500

        analytics = await db[ANALYTICS].find_one({'booking_id': body['booking_id']})
        assert analytics['event_id'] == EVENT_ID
        assert analytics['revenue'] == 1500

        ticket, pdf = mailer.send_booking_confirmation.call_args.args
        assert pdf == FAKE_PDF
        assert ticket.ticket_id == 'TGIN-25-D1-00001'
        render_pdf.assert_awaited_once()

    async def test_authorized_payments_are_accepted(self, client, gateway, seed_event):
        await seed_event()
        gateway.fetch_payment.return_value = {'status': 'authorized', 'amount': 99900, 'currency': 'INR'}

        response = await client.post('/api/razorpay/verify', json=verify_payload())

        assert response.status_code == 200
        assert response.json()['amount'] == 999

    async def test_successive_bookings_get_successive_ticket_ids(self, client, seed_event):
        await seed_event()

        first = await client.post('/api/razorpay/verify', json=verify_payload(payment_id='pay_1'))
        second = await client.post('/api/razorpay/verify', json=verify_payload(payment_id='pay_2'))

        assert first.json()['ticket_id'] == 'TGIN-25-D1-00001'
        assert second.json()['ticket_id'] == 'TGIN-25-D1-00002'

    async def test_unknown_event_still_records_booking(self, client, db):
        # No event seeded: the payment is captured, so the booking is kept
        response = await client.post('/api/razorpay/verify', json=verify_payload())

        assert response.status_code == 200
        assert await count_bookings(db) == 1


class TestNullCheckoutFields:
    async def test_null_discount_details_still_books(self, client, db, seed_event):
        await seed_event()
        payload = verify_payload()
        payload['discountDetails'] = None

        response = await client.post('/api/razorpay/verify', json=payload)

        assert response.status_code == 200
        saved = await db[BOOKINGS].find_one({'payment_id': 'pay_123'})
        assert saved['referral_code'] is None

    @pytest.mark.parametrize('phone', [None, '', '   '])
    async def test_missing_phone_is_stored_as_not_available(self, client, db, seed_event, phone):
        await seed_event()
        payload = verify_payload()
        payload['customerDetails']['phone'] = phone

        response = await client.post('/api/razorpay/verify', json=payload)

        assert response.status_code == 200
        saved = await db[BOOKINGS].find_one({'payment_id': 'pay_123'})
        assert saved['customer_phone'] == 'N/A'

    async def test_null_event_fields_fall_back_to_stored_event(self, client, mailer, seed_event):
        # Given: a captured payment whose event details carry nulls
        await seed_event()
        payload = verify_payload(title=None, passType=None, time=None, venue=None, quantity=None, eventDays=None)

        # When
        response = await client.post('/api/razorpay/verify', json=payload)

        # Then: the booking goes through and the stored event fills the gaps
        assert response.status_code == 200
        assert response.json()['ticket_id'] == 'TGIN-25-D1-00001'
        ticket, _ = mailer.send_booking_confirmation.call_args.args
        assert ticket.event_title == 'Neon Nights'
        assert ticket.pass_type == 'General Admission'
        assert ticket.event_time == '19:00'
        assert ticket.event_venue == 'Arena'
        assert ticket.quantity == 1

    async def test_null_required_field_is_still_rejected(self, client, db, gateway):
        payload = verify_payload()
        payload['customerDetails']['email'] = None

        response = await client.post('/api/razorpay/verify', json=payload)

        assert response.status_code == 400
        assert response.json() == {'success': False, 'error': 'Invalid customerDetails.email'}
        gateway.fetch_payment.assert_not_awaited()
        assert await count_bookings(db) == 0


class TestRejectedVerification:
    async def test_invalid_signature_never_reaches_gateway(self, client, db, gateway):
        response = await client.post('/api/razorpay/verify', json=verify_payload(signature='0' * 64))

        assert response.status_code == 400
        assert response.json() == {'success': False, 'error': 'Invalid payment signature'}
        gateway.fetch_payment.assert_not_awaited()
        assert await count_bookings(db) == 0

    @pytest.mark.parametrize('status', ['created', 'failed', 'refunded', None])
    async def test_unsuccessful_status_creates_no_booking(self, client, db, gateway, mailer, status):
        gateway.fetch_payment.return_value = {'status': status, 'amount': 150000, 'currency': 'INR'}
        before = await count_bookings(db)

        response = await client.post('/api/razorpay/verify', json=verify_payload())

        assert response.status_code == 400
        assert response.json() == {'success': False, 'error': 'Payment not successful'}
        assert await count_bookings(db) == before
        mailer.send_booking_confirmation.assert_not_awaited()

    async def test_gateway_outage_is_a_server_error(self, client, db, gateway):
        gateway.fetch_payment.side_effect = GatewayError('Payment verification failed')

        response = await client.post('/api/razorpay/verify', json=verify_payload())

        assert response.status_code == 500
        assert response.json()['success'] is False
        assert await count_bookings(db) == 0

    async def test_missing_signature_secret_fails_closed(self, client, db, gateway, monkeypatch):
        monkeypatch.setattr(config, 'PAYMENT_SIGNATURE_SECRET', '')

        response = await client.post('/api/razorpay/verify', json=verify_payload())

        assert response.status_code == 500
        assert response.json() == {'success': False, 'error': 'Server configuration error'}
        gateway.fetch_payment.assert_not_awaited()
        assert await count_bookings(db) == 0

    async def test_malformed_payload_is_a_client_error(self, client, gateway):
        payload = verify_payload()
        del payload['customerDetails']

        response = await client.post('/api/razorpay/verify', json=payload)

        assert response.status_code == 400
        assert response.json()['success'] is False
        gateway.fetch_payment.assert_not_awaited()


class TestPostPaymentFailures:
    async def test_booking_persistence_failure_is_downgraded_to_warning(
        self, client, db, mailer, render_pdf, seed_event, monkeypatch
    ):
        # Given: the store fails while the booking is being written
        await seed_event()

        async def broken_sequence(db, day_number):
            raise RuntimeError('connection refused')

        monkeypatch.setattr(booking_service, 'next_ticket_sequence', broken_sequence)

        # When
        response = await client.post('/api/razorpay/verify', json=verify_payload())

        # Then
        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['message'] == 'Payment verified but booking creation failed'
        assert body['warning'] == 'Booking not saved to database'
        assert body['email_sent'] is False
        assert 'ticket_pdf' not in body
        render_pdf.assert_not_awaited()
        mailer.send_booking_confirmation.assert_not_awaited()
        assert await count_bookings(db) == 0

    async def test_email_failure_keeps_success_and_pdf(self, client, mailer, seed_event):
        await seed_event()
        mailer.send_booking_confirmation.side_effect = RuntimeError('SMTP auth failed')

        response = await client.post('/api/razorpay/verify', json=verify_payload())

        body = response.json()
        assert response.status_code == 200
        assert body['success'] is True
        assert body['email_sent'] is False
        assert body['ticket_pdf']['data'] == base64.b64encode(FAKE_PDF).decode()
        assert 'Email sending failed' in body['warnings']

    async def test_pdf_failure_still_emails_without_attachment(self, client, mailer, render_pdf, seed_event):
        await seed_event()
        render_pdf.side_effect = RuntimeError('font missing')

        response = await client.post('/api/razorpay/verify', json=verify_payload())

        body = response.json()
        assert body['success'] is True
        assert body['pdf_generated'] is False
        assert 'ticket_pdf' not in body
        assert body['email_sent'] is True
        assert 'PDF generation failed' in body['warnings']
        _, pdf = mailer.send_booking_confirmation.call_args.args
        assert pdf is None

    async def test_analytics_failure_is_swallowed(self, client, db, seed_event, monkeypatch):
        await seed_event()

        async def broken_analytics(*args):
            raise RuntimeError('analytics down')

        monkeypatch.setattr(booking_service, 'record_booking', broken_analytics)

        response = await client.post('/api/razorpay/verify', json=verify_payload())

        body = response.json()
        assert body['success'] is True
        assert body['email_sent'] is True
        assert 'Analytics tracking failed' in body['warnings']
        assert await count_bookings(db) == 1


class TestIdempotency:
    async def test_replayed_verification_does_not_double_book(self, client, db, mailer, seed_event):
        await seed_event()

        first = await client.post('/api/razorpay/verify', json=verify_payload())
        second = await client.post('/api/razorpay/verify', json=verify_payload())

        assert first.status_code == second.status_code == 200
        assert second.json()['duplicate'] is True
        assert second.json()['booking_id'] == first.json()['booking_id']
        assert second.json()['ticket_id'] == first.json()['ticket_id']
        assert await count_bookings(db) == 1
        assert mailer.send_booking_confirmation.await_count == 1

    async def test_unique_index_catches_a_racing_duplicate(self, client, db, mailer, seed_event, monkeypatch):
        # Given: both requests pass the duplicate lookup before either inserts
        await ensure_indexes(db)
        await seed_event()

        async def no_existing(self, payment_id):
            return None

        monkeypatch.setattr(BookingIssuer, '_find_existing', no_existing)

        first = await client.post('/api/razorpay/verify', json=verify_payload())
        second = await client.post('/api/razorpay/verify', json=verify_payload())

        assert second.json()['duplicate'] is True
        assert second.json()['booking_id'] == first.json()['booking_id']
        assert await count_bookings(db) == 1


class TestPassAndDaySelection:
    async def test_unknown_pass_falls_back_to_first_pass_with_warning(self, client, db, seed_event):
        await seed_event()

        response = await client.post('/api/razorpay/verify', json=verify_payload(passId='no-such-pass'))

        body = response.json()
        assert body['success'] is True
        assert any('no-such-pass' in warning for warning in body['warnings'])
        saved = await db[BOOKINGS].find_one({'payment_id': 'pay_123'})
        assert saved['pass_id'] == 'pass-ga'

    async def test_multi_day_ticket_uses_selected_day(self, client, mailer, seed_event):
        # Given: a three-day festival, customer buys a day-2 pass
        days = [
            {'id': f'day-{n}', 'day_number': n, 'title': f'Day {n}', 'date': f'2025-12-2{n}',
             'time': '18:00', 'venue': f'Stage {n}', 'passes': [{'id': f'pass-d{n}', 'name': f'Day {n} Pass'}]}
            for n in (1, 2, 3)
        ]
        await seed_event(is_multi_day=True, passes=[], event_days=days)
        event_days = [
            {'id': d['id'], 'dayNumber': d['day_number'], 'title': d['title'], 'date': d['date'],
             'time': d['time'], 'venue': d['venue'], 'passes': d['passes']}
            for d in days
        ]

        # When
        response = await client.post(
            '/api/razorpay/verify',
            json=verify_payload(passId='pass-d2', isMultiDay=True, selectedDayId='day-2', eventDays=event_days),
        )

        # Then
        assert response.json()['ticket_id'] == 'TGIN-25-D2-00001'
        ticket, _ = mailer.send_booking_confirmation.call_args.args
        assert ticket.day_number == 2
        assert ticket.event_date == '2025-12-22'
        assert ticket.event_venue == 'Stage 2'
        assert ticket.event_time == '18:00'
        assert ticket.event_duration == '3 Days'

    async def test_stored_day_is_used_when_client_omits_it(self, client, seed_event):
        days = [
            {'id': 'day-1', 'day_number': 1, 'passes': [{'id': 'pass-d1', 'name': 'Day 1'}]},
            {'id': 'day-3', 'day_number': 3, 'passes': [{'id': 'pass-d3', 'name': 'Day 3'}]},
        ]
        await seed_event(is_multi_day=True, passes=[], event_days=days)

        response = await client.post('/api/razorpay/verify', json=verify_payload(passId='pass-d3'))

        assert response.json()['ticket_id'] == 'TGIN-25-D3-00001'

    async def test_pass_details_day_number_is_honoured_for_single_day_payloads(self, client):
        response = await client.post('/api/razorpay/verify', json=verify_payload(passDetails={'dayNumber': 4}))

        assert response.json()['ticket_id'] == 'TGIN-25-D4-00001'
