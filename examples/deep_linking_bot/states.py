from aiogram.fsm.state import State, StatesGroup


class RelayStates(StatesGroup):
    waiting_message = State()
