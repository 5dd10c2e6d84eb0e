"""
ApertureAgent 命令行入口

职责：
1. 设置 sys.path（唯一允许修改 sys.path 的位置）
2. 初始化路径配置
3. 启动交互循环

HTTP / WebSocket 服务入口在 api/main.py
"""
import asyncio
import sys
from pathlib import Path

# ==================== 1. 设置项目根目录到 sys.path ====================
ROOT_DIR = Path(__file__).parent.resolve()
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# ==================== 2. 初始化路径配置 ====================
from config.paths import init_paths
paths = init_paths(ROOT_DIR)
paths.ensure_directories()

# ==================== 3. 导入应用模块 ====================
from agent.errors import AgentError
from agent.session import AgentSession
from llm.errors import CompletionError
from utils.logger import logger

logger.set_file_logging(True, str(paths.logs_dir))


def print_progress(text: str) -> None:
    print(f"   ⏳ {text}")


def handle_command(session: AgentSession, command: str) -> None:
    """
    处理斜杠命令

    /new  /history  /load <chat_id>  /guide <guide_id|off>
    """
    name, _, arg = command.partition(" ")
    arg = arg.strip()

    if name == "/new":
        print(f"\n🤖 {session.new_chat()}")
    elif name == "/history":
        chats = session.history()
        if not chats:
            print("   (暂无历史聊天)")
        for c in chats:
            marker = "*" if c["isCurrent"] else " "
            print(f" {marker} {c['id']}  {c['title']}")
    elif name == "/load":
        for m in session.load_chat(arg):
            speaker = "👤" if m["isUser"] else "🤖"
            print(f"{speaker} {m['text']}")
    elif name == "/guide":
        applied = session.apply_guide(None if arg in ("", "off") else arg)
        print("   📘 已注入引导手册" if applied else "   已清除引导手册")
    else:
        print(f"   未知命令: {name}")


async def main():
    """主函数"""
    session = AgentSession(paths)
    startup = session.restore()

    print("\n" + "=" * 60)
    print(f"📁 ApertureAgent 已启动 (模型: {startup['model']} | 状态: {startup['status']})")
    print("=" * 60)
    print("💡 使用说明:")
    print("  - 直接提问: 浏览 搜索 阅读云端文件")
    print("  - /new 新建聊天  /history 历史  /load <id> 切换")
    print("  - /guide <id> 注入引导手册  /guide off 清除")
    print("  - 输入 'exit' 退出")
    print("=" * 60 + "\n")

    for m in startup["displayMessages"]:
        speaker = "👤" if m["isUser"] else "🤖"
        print(f"{speaker} {m['text']}")

    try:
        while True:
            user_input = input("\n👤 你: ").strip()

            if not user_input:
                continue

            if user_input.lower() in ["exit", "退出"]:
                print("\n👋 再见！")
                break

            try:
                if user_input.startswith("/"):
                    handle_command(session, user_input)
                    continue
                answer = await session.send(user_input, notifier=print_progress)
            except (AgentError, CompletionError) as e:
                print(f"\n❌ {e.message}")
                continue

            print(f"\n🤖 {answer}")
            state = session.loop.last_state
            if state is not None:
                print(f"\n📊 本次统计: ⏱️ {state.duration:.2f}s | 🔁 {state.iteration} 步 | 🔧 {len(state.tool_results)} 次工具调用")

    except KeyboardInterrupt:
        print("\n\n👋 再见！")
    finally:
        logger.info("CLI 退出")


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
