import logging

from aiogram import Bot, F, Router
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import CommandObject, CommandStart, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import Message

from examples.deep_linking_bot.repository import MessageRepository
from examples.deep_linking_bot.states import RelayStates
from examples.deep_linking_bot.templates import RelayTemplates, deep_link

logger = logging.getLogger(__name__)

router = Router()


async def _own_link(bot: Bot, chat_id: int) -> str:
    me = await bot.me()
    return deep_link(me.username, chat_id)


@router.message(CommandStart(deep_link=True))
async def on_deep_link(message: Message, command: CommandObject, state: FSMContext) -> None:
    args = command.args or ""
    if not args.lstrip("-").isdigit():
        await message.answer(RelayTemplates.wrong_link())
        return

    await state.set_state(RelayStates.waiting_message)
    await state.update_data(recipient_id=int(args))
    await message.answer(RelayTemplates.send_your_message())


@router.message(CommandStart())
async def on_start(message: Message, bot: Bot, state: FSMContext) -> None:
    await state.clear()
    await message.answer(RelayTemplates.start(await _own_link(bot, message.chat.id)))


@router.message(StateFilter(RelayStates.waiting_message), F.text)
async def on_message_to_relay(
    message: Message,
    bot: Bot,
    state: FSMContext,
    message_repository: MessageRepository,
) -> None:
    data = await state.get_data()
    recipient_id = data["recipient_id"]

    # Recipient gets the message first, then the sender is told
    try:
        await bot.send_message(recipient_id, RelayTemplates.new_message(message.text))
    except TelegramAPIError as e:
        logger.warning("Cannot relay message to %d: %s", recipient_id, e)
        await message.answer(RelayTemplates.recipient_unavailable())
        return

    await message_repository.add(message.from_user.id, recipient_id, message.text)
    await state.clear()
    await message.answer(RelayTemplates.message_sent(await _own_link(bot, message.chat.id)))


@router.message(StateFilter(RelayStates.waiting_message))
async def on_not_text(message: Message) -> None:
    await message.answer(RelayTemplates.send_text())
