"""Command line script for Northwind."""
import os
import shutil
import sys
from argparse import ArgumentParser, Namespace, RawTextHelpFormatter
from pathlib import Path
from textwrap import dedent
from typing import Optional, Sequence

from northwind.config import NorthwindConfig, set_config
from northwind.core import NorthwindError, get_logger
from northwind.orm import init_db, set_default_sessionmaker
from northwind.repository import NorthwindRepository
from northwind.utils import Fore, bold, fg, mask_password

YELLOW, CYAN, RED, GREEN = (
    Fore.YELLOW,
    Fore.CYAN,
    Fore.RED,
    Fore.GREEN,
)
WHITE_EX, CYAN_EX = Fore.LIGHTWHITE_EX, Fore.LIGHTCYAN_EX


logger = get_logger("northwind.command")


class NorthwindCommand:
    def __init__(self, path: Optional[Path] = None):
        """Constructor.

        현재 경로의 ``setup.cfg`` 와 ``NORTHWIND_*`` 환경변수에서 설정을 읽습니다.
        """
        self.path = path or Path(os.path.abspath("."))
        self.config = NorthwindConfig.load_from_config(self.path)
        set_config(self.config)

    def print_warn(self, msg: str):
        print(f"{bold('Northwind WARNING:', YELLOW)} {msg}")

    def banner(self, msg, icon=""):
        """배너를 표시합니다."""
        if os.name == "nt":
            icon = ""
        term_width = shutil.get_terminal_size().columns
        banner_width = min(75, term_width)
        print("─" * banner_width)
        print(f"{icon} {msg}")
        print("─" * banner_width)

    def info(self):
        """Northwind 설정 정보를 출력합니다."""
        dot = bold("-", YELLOW)
        self.banner(f"{bold('Northwind Information')}", icon="💡")
        db_url = mask_password(self.config.db_url)
        print(dot, fg("DB", CYAN), "      :", fg(db_url, WHITE_EX))
        print(dot, fg("Echo", CYAN), "    :", fg(self.config.db_echo, WHITE_EX))
        print(
            dot,
            fg("MaxSave", CYAN),
            " :",
            fg(self.config.max_save_entities, WHITE_EX),
        )
        print(dot, fg("Path", CYAN), "    :", fg(self.path, WHITE_EX))

    def initdb(self, drop=False):
        """DB 테이블을 생성합니다.

        --drop 옵션을 주면 기존 테이블을 모두 지우고 다시 만듭니다.
        """
        if drop:
            self.print_warn(f"*{bold('drop')}* all tables...")
        session_factory = init_db(drop_all=drop, config=self.config)
        set_default_sessionmaker(session_factory)
        print(bold("tables created:", GREEN), mask_password(self.config.db_url))

    def metadata(self):
        """클라이언트용 메타데이터 JSON 을 출력합니다."""
        with NorthwindRepository() as repo:
            print(repo.metadata)

    def reset(self, session_id: Optional[str] = None, full=False):
        """세션이 추가한 데이터를 지웁니다.

        --full 옵션을 주면 모든 세션의 추가 데이터를 지웁니다.
        """
        logger.debug("reset requested: session=%s full=%s", session_id, full)
        try:
            with NorthwindRepository() as repo:
                repo.user_session_id = session_id
                print(repo.reset("fullreset" if full else ""))
        except ValueError as e:
            raise NorthwindError(f"invalid session id: {session_id}") from e


class NorthwindCommandParser:
    """콘솔 커맨드 명령어 파서.

    실제 작업은 `NorthwindCommand` 객체에 위임합니다.
    """

    def __init__(self, cmd: Optional[NorthwindCommand] = None):
        """기본 생성자."""
        self.parser = ArgumentParser(
            "northwind",
            description=f"✨ {bold('Northwind')} : {fg('data access utility', CYAN_EX)}",
        )
        self._subparsers = self.parser.add_subparsers(dest="command")
        self._cmd = cmd or NorthwindCommand()

        # init subparsers
        for handler in [
            self._cmd.info,
            self._cmd.initdb,
            self._cmd.metadata,
            self._cmd.reset,
        ]:
            command = handler.__name__
            # 핸들러 함수의 주석을 커맨드라인 도움말로 변환하기 위한 작업입니다.
            doc = None
            if handler.__doc__:
                lines = handler.__doc__.splitlines()
                doc = lines[0] + "\n" + dedent("\n".join(lines[1:]))
            parser = self._subparsers.add_parser(
                command,
                description=doc,
                formatter_class=RawTextHelpFormatter,
            )
            if command == "initdb":
                parser.add_argument(
                    "--drop", action="store_true", help="기존 테이블을 지우고 다시 생성"
                )
            if command == "reset":
                parser.add_argument(
                    "--full", action="store_true", help="모든 세션의 추가 데이터 삭제"
                )
                parser.add_argument(
                    "--session", dest="session_id", metavar="UUID", help="세션 id"
                )

    def parse_args(self, args: Sequence[str]):
        """콘솔 명령어를 해석해서 적절한 작업을 수행합니다."""
        if not args:
            self.parser.print_help()
            return

        ns = self.parser.parse_args(args)
        try:
            if hasattr(self, ns.command):
                # 커맨드 명령어와 동일한 이름의 메소드가 파서 클래스에 있으면
                # 그 메소드를 호출해서 적당한 처리 후 실제 메소드를 호출합니다.
                getattr(self, ns.command)(ns)
            else:
                getattr(self._cmd, ns.command)()
        except NorthwindError as e:
            print(
                f"{bold('Northwind ERROR:', RED)} {fg(e.message, YELLOW)}",
                file=sys.stderr,
            )
            return 1
        return 0

    def initdb(self, ns: Namespace):
        """`initdb` 명령어 처리."""
        self._cmd.initdb(drop=ns.drop)

    def reset(self, ns: Namespace):
        """`reset` 명령어 처리."""
        self._cmd.reset(session_id=ns.session_id, full=ns.full)


def console_main():
    parser = NorthwindCommandParser()
    sys.exit(parser.parse_args(sys.argv[1:]))


if __name__ == "__main__":
    console_main()
