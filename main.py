import asyncio
import logging
from aiogram import Bot, Dispatcher
from aiogram.enums import ParseMode
from aiogram.client.default import DefaultBotProperties
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application
from aiohttp import web

from gorbagana.config import settings
from gorbagana.redis_db import init_redis, close_redis
from gorbagana.handlers import slots
from gorbagana.services.spin_service import spin_service

# Настройка логирования
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def create_bot():
    """Создать экземпляр бота"""
    return Bot(
        token=settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )


async def create_dispatcher():
    """Создать диспетчер"""
    storage = MemoryStorage()
    dp = Dispatcher(storage=storage)

    dp.include_router(slots.router)

    return dp


async def init_services() -> bool:
    """Redis + HTTP сессия для программы"""
    try:
        await init_redis()
        logger.info("✅ Redis initialized successfully")
    except Exception as e:
        logger.error(f"❌ Redis initialization failed: {e}")
        return False

    await spin_service.start()
    mode = "demo (local payouts)" if settings.DEMO_MODE else f"program {settings.PROGRAM_ID}"
    logger.info(f"🎰 Spin service started, mode: {mode}")
    return True


async def close_services():
    await spin_service.close()
    await close_redis()


async def polling_main():
    """Запуск бота в режиме polling (для разработки)"""
    bot = await create_bot()
    dp = await create_dispatcher()

    if not await init_services():
        await bot.session.close()
        return

    try:
        logger.info("🗑️ Gorbagana Trash Rush запущен в режиме polling")
        logger.info(f"Bot username: @{(await bot.get_me()).username}")
        await dp.start_polling(bot)
    finally:
        await close_services()
        await bot.session.close()


async def webhook_main():
    """Запуск бота в режиме webhook (для продакшена)"""
    bot = await create_bot()
    dp = await create_dispatcher()

    if not await init_services():
        await bot.session.close()
        return None

    # Настройка webhook
    webhook_url = f"{settings.WEBHOOK_URL}{settings.WEBHOOK_PATH}"
    await bot.set_webhook(webhook_url)
    logger.info(f"✅ Webhook set to: {webhook_url}")

    # Создание aiohttp приложения
    app = web.Application()
    webhook_requests_handler = SimpleRequestHandler(
        dispatcher=dp,
        bot=bot,
    )
    webhook_requests_handler.register(app, path=settings.WEBHOOK_PATH)
    setup_application(app, dp, bot=bot)

    async def on_cleanup(_app):
        await close_services()

    app.on_cleanup.append(on_cleanup)

    logger.info(f"🗑️ Gorbagana Trash Rush запущен на порту {settings.PORT}")
    logger.info(f"Bot username: @{(await bot.get_me()).username}")

    return app


async def main():
    """Главная функция запуска бота"""
    settings.validate()

    if settings.WEBHOOK_URL:
        # Продакшен режим с webhook
        app = await webhook_main()
        if app:
            runner = web.AppRunner(app)
            await runner.setup()
            site = web.TCPSite(runner, '0.0.0.0', settings.PORT)
            await site.start()

            # Держим сервер запущенным
            try:
                await asyncio.Future()
            finally:
                await runner.cleanup()
    else:
        # Режим разработки с polling
        await polling_main()


if __name__ == '__main__':
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("👋 Bot stopped")
