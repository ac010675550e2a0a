import unittest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import aiohttp

from gorbagana.authority.program import (
    ProgramAuthority, SlotsState, lamports_to_sol, sol_to_lamports,
)
from gorbagana.errors import AuthorityError

WALLET = '7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU'


def make_authority(session=None) -> ProgramAuthority:
    return ProgramAuthority(
        session or MagicMock(),
        WALLET,
        relay_url='https://relay.example/',
        rpc_url='https://rpc.example',
        program_id='Slots1111111111111111111111111111111111111',
    )


class TestConversions(unittest.TestCase):

    def test_sol_to_lamports_floors(self):
        self.assertEqual(sol_to_lamports(Decimal('0.01')), 10_000_000)
        self.assertEqual(sol_to_lamports(Decimal('0.001')), 1_000_000)
        self.assertEqual(sol_to_lamports(Decimal('0.0000000019')), 1)

    def test_lamports_to_sol(self):
        self.assertEqual(lamports_to_sol(1_000_000_000), Decimal('1'))
        self.assertEqual(lamports_to_sol(10_000_000), Decimal('0.01'))


class TestProgramSpin(unittest.IsolatedAsyncioTestCase):

    async def test_spin_parses_spin_result(self):
        authority = make_authority()
        authority._request = AsyncMock(return_value={
            'signature': '5abc',
            'symbols': [0, 0, 0],
            'payout': 1_000_000_000,
        })

        outcome = await authority.spin(Decimal('0.01'))

        self.assertEqual(outcome.payline_symbols, (0, 0, 0))
        self.assertEqual(outcome.payout_amount, Decimal('1'))
        self.assertTrue(outcome.authoritative)
        self.assertEqual(outcome.signature, '5abc')

        method, url, payload = authority._request.call_args.args
        self.assertEqual(method, 'POST')
        self.assertEqual(url, 'https://relay.example/spin')
        self.assertEqual(payload['betAmount'], 10_000_000)
        self.assertEqual(payload['user'], WALLET)

    async def test_malformed_result(self):
        authority = make_authority()
        authority._request = AsyncMock(return_value={'symbols': [0, 1], 'payout': 0})

        with self.assertRaises(AuthorityError):
            await authority.spin(Decimal('0.01'))

    async def test_symbols_are_not_coerced(self):
        for symbols in ([1.9, 0, 0], [True, 0, 0], ['2', 0, 0], '000', 7):
            with self.subTest(symbols=symbols):
                with self.assertRaises(AuthorityError):
                    ProgramAuthority._parse_outcome({'symbols': symbols, 'payout': 0})

    async def test_payout_must_be_integer_lamports(self):
        for payout in (1.5, '1000', True):
            with self.subTest(payout=payout):
                with self.assertRaises(AuthorityError):
                    ProgramAuthority._parse_outcome({'symbols': [0, 0, 0], 'payout': payout})

    async def test_missing_payout(self):
        authority = make_authority()
        authority._request = AsyncMock(return_value={'symbols': [0, 1, 2]})

        with self.assertRaises(AuthorityError):
            await authority.spin(Decimal('0.01'))

    async def test_transport_error_becomes_authority_error(self):
        session = MagicMock()
        session.request = MagicMock(side_effect=aiohttp.ClientConnectionError('connection refused'))
        authority = make_authority(session)

        with self.assertRaises(AuthorityError) as ctx:
            await authority.spin(Decimal('0.01'))
        self.assertIn('connection refused', str(ctx.exception))


class TestProgramErrors(unittest.TestCase):

    def test_known_program_codes(self):
        error = ProgramAuthority._error_from({'error': {'code': 6001, 'message': 'custom program error: 0x1771'}}, 400)
        self.assertEqual(str(error), 'Bet amount too high')
        self.assertEqual(error.code, 6001)

    def test_relay_message(self):
        error = ProgramAuthority._error_from({'error': {'message': 'insufficient funds'}}, 400)
        self.assertEqual(str(error), 'insufficient funds')
        self.assertEqual(error.code, 400)

    def test_empty_body(self):
        error = ProgramAuthority._error_from(None, 502)
        self.assertEqual(str(error), 'HTTP 502')


class TestProgramAccounts(unittest.IsolatedAsyncioTestCase):

    async def test_get_balance(self):
        authority = make_authority()
        authority._request = AsyncMock(return_value={
            'jsonrpc': '2.0', 'id': 1, 'result': {'context': {'slot': 1}, 'value': 250_000_000},
        })

        self.assertEqual(await authority.get_balance(), Decimal('0.25'))
        method, url, payload = authority._request.call_args.args
        self.assertEqual(url, 'https://rpc.example')
        self.assertEqual(payload['method'], 'getBalance')
        self.assertEqual(payload['params'], [WALLET])

    async def test_get_balance_rpc_error(self):
        authority = make_authority()
        authority._request = AsyncMock(return_value={'error': {'code': -32602, 'message': 'Invalid param'}})

        with self.assertRaises(AuthorityError):
            await authority.get_balance()

    async def test_slots_state(self):
        authority = make_authority()
        authority._request = AsyncMock(return_value={
            'authority': WALLET,
            'initialized': True,
            'treasury': WALLET,
            'totalSpins': 42,
            'totalPayout': 3_000_000_000,
            'houseEdge': 5,
        })

        state = await authority.get_slots_state()

        self.assertIsInstance(state, SlotsState)
        self.assertEqual(state.total_spins, 42)
        self.assertEqual(state.total_payout, Decimal('3'))
        self.assertEqual(state.house_edge, 5)

    async def test_slots_state_not_initialized(self):
        authority = make_authority()
        authority._request = AsyncMock(side_effect=AuthorityError('HTTP 404', code=404))

        self.assertIsNone(await authority.get_slots_state())

    async def test_initialize_returns_signature(self):
        authority = make_authority()
        authority._request = AsyncMock(return_value={'signature': '3xyz'})

        self.assertEqual(await authority.initialize(), '3xyz')
        payload = authority._request.call_args.args[2]
        self.assertEqual(payload['authority'], WALLET)
        self.assertEqual(payload['treasury'], WALLET)


if __name__ == '__main__':
    unittest.main()
