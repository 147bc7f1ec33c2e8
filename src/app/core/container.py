"""의존성 주입 컨테이너

컴포지션 루트(main.create_app)에서 인스턴스를 만들어 app.state에 보관한다.
모듈 전역 인스턴스는 두지 않는다.
"""
from typing import Any, Callable, Dict, Type, TypeVar, Union, get_args, get_origin
from types import UnionType
import inspect

from fastapi import Request


T = TypeVar('T')


class DIContainer:
    """간단한 의존성 주입 컨테이너"""

    def __init__(self):
        self._services: Dict[Type, Any] = {}
        self._singletons: Dict[Type, Any] = {}
        self._factories: Dict[Type, Callable[[], Any]] = {}

    def register_singleton(self, interface: Type[T], implementation: T) -> None:
        """싱글톤 인스턴스 등록"""
        self._singletons[interface] = implementation

    def register_transient(self, interface: Type[T], factory_func: Callable[[], T]) -> None:
        """팩토리 함수 등록 (매번 새 인스턴스 생성)"""
        self._factories[interface] = factory_func

    def register_service(self, interface: Type[T], service_class: Type[T]) -> None:
        """서비스 클래스 등록 (의존성 자동 해결, 최초 조회 시 생성)"""
        self._services[interface] = service_class

    def has(self, interface: Type) -> bool:
        return interface in self._singletons or interface in self._factories or interface in self._services

    def get(self, interface: Type[T]) -> T:
        """서비스 인스턴스 조회"""
        if interface in self._singletons:
            return self._singletons[interface]

        if interface in self._factories:
            return self._factories[interface]()

        if interface in self._services:
            instance = self._create_instance(self._services[interface])
            self._singletons[interface] = instance
            return instance

        interface_name = getattr(interface, "__name__", repr(interface))
        raise ValueError(f"Service {interface_name} not registered")

    def _create_instance(self, service_class: Type[T]) -> T:
        """생성자 타입 힌트를 따라 의존성을 해결하여 인스턴스 생성"""
        sig = inspect.signature(service_class.__init__, eval_str=True)

        kwargs = {}
        for param_name, param in sig.parameters.items():
            if param_name == 'self' or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue

            param_type = param.annotation
            if param_type is inspect.Parameter.empty:
                continue

            candidates = self._candidate_types(param_type)
            resolved = next((self.get(c) for c in candidates if self.has(c)), None)
            if resolved is not None:
                kwargs[param_name] = resolved
            elif param.default is not inspect.Parameter.empty:
                kwargs[param_name] = param.default
            elif type(None) in get_args(param_type):
                kwargs[param_name] = None
            else:
                raise ValueError(f"Cannot resolve dependency {param_type} for {service_class.__name__}")

        return service_class(**kwargs)

    @staticmethod
    def _candidate_types(annotation: Any) -> list:
        origin = get_origin(annotation)
        if origin in (Union, UnionType):
            return [arg for arg in get_args(annotation) if arg is not type(None)]
        return [annotation]


def get_container(request: Request) -> DIContainer:
    """라우터 의존성: create_app 이 app.state 에 올려둔 컨테이너"""
    return request.app.state.container
