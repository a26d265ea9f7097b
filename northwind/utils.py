from colorama import init as init_colors

init_colors()  # For Windows environment

from colorama import Fore, Style  # noqa: E402


def fg(text, color=Fore.WHITE):
    """텍스트를 지정된 ANSI 컬러로 출력합니다."""
    return f"{color}{text}{Fore.RESET}"


def bold(text, color=Fore.WHITE):
    """텍스트를 지정된 ANSI 컬러와 밝기 효과를 주어 출력합니다."""
    return f"{Style.BRIGHT}{color}{text}{Style.RESET_ALL}"


def mask_password(db_url: str) -> str:
    """DB URL 에 포함된 비밀번호를 ``***`` 로 가립니다."""
    from sqlalchemy.engine import make_url

    return make_url(db_url).render_as_string(hide_password=True)
