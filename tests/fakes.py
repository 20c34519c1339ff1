"""
Firestore em memória para os testes.

Cobre apenas o que o app usa: collection/document, get/set/update/delete,
where('==')/order_by/limit/stream e batch(). Cada commit de batch é contado
e guardado em `batches` para os testes de atomicidade.
"""

import copy
import uuid
from datetime import datetime, timezone

from google.api_core.exceptions import NotFound
from google.cloud import firestore


def _resolver(valor):
    if valor is firestore.SERVER_TIMESTAMP:
        return datetime.now(timezone.utc)
    return valor


def _resolver_dict(dados):
    return {k: _resolver(v) for k, v in dados.items()}


class FakeSnapshot:
    def __init__(self, doc_id, dados):
        self.id = doc_id
        self._dados = dados

    @property
    def exists(self):
        return self._dados is not None

    def to_dict(self):
        return copy.deepcopy(self._dados) if self._dados is not None else None


class FakeDocRef:
    def __init__(self, db, colecao, doc_id):
        self._db = db
        self._colecao = colecao
        self.id = doc_id

    def _tabela(self):
        return self._db.dados.setdefault(self._colecao, {})

    def get(self):
        self._db.leituras += 1
        return FakeSnapshot(self.id, copy.deepcopy(self._tabela().get(self.id)))

    def set(self, dados, merge=False):
        tabela = self._tabela()
        if merge and self.id in tabela:
            tabela[self.id].update(_resolver_dict(dados))
        else:
            tabela[self.id] = _resolver_dict(dados)

    def update(self, dados):
        tabela = self._tabela()
        if self.id not in tabela:
            raise NotFound(f"No document to update: {self._colecao}/{self.id}")
        tabela[self.id].update(_resolver_dict(dados))

    def delete(self):
        self._tabela().pop(self.id, None)


class FakeQuery:
    def __init__(self, db, colecao, filtros=None, ordem=None, limite=None):
        self._db = db
        self._colecao = colecao
        self._filtros = filtros or []
        self._ordem = ordem
        self._limite = limite

    def where(self, campo, op, valor):
        assert op == '==', "o fake só suporta igualdade"
        return FakeQuery(self._db, self._colecao, self._filtros + [(campo, valor)], self._ordem, self._limite)

    def order_by(self, campo, direction=None):
        return FakeQuery(self._db, self._colecao, self._filtros, (campo, direction), self._limite)

    def limit(self, n):
        return FakeQuery(self._db, self._colecao, self._filtros, self._ordem, n)

    def stream(self):
        self._db.consultas += 1
        itens = [
            (doc_id, dados) for doc_id, dados in self._db.dados.get(self._colecao, {}).items()
            if all(dados.get(campo) == valor for campo, valor in self._filtros)
        ]
        if self._ordem:
            campo, direcao = self._ordem
            # Como no Firestore, documentos sem o campo ficam de fora da ordenação
            itens = [i for i in itens if i[1].get(campo) is not None]
            itens.sort(key=lambda i: i[1][campo], reverse=direcao == firestore.Query.DESCENDING)
        if self._limite is not None:
            itens = itens[:self._limite]
        return iter([FakeSnapshot(doc_id, copy.deepcopy(dados)) for doc_id, dados in itens])


class FakeCollection(FakeQuery):
    def document(self, doc_id=None):
        return FakeDocRef(self._db, self._colecao, doc_id or uuid.uuid4().hex[:20])


class FakeBatch:
    def __init__(self, db):
        self._db = db
        self.operacoes = []

    def set(self, ref, dados, merge=False):
        self.operacoes.append(('set', ref, dados, merge))

    def update(self, ref, dados):
        self.operacoes.append(('update', ref, dados, False))

    def delete(self, ref):
        self.operacoes.append(('delete', ref, None, False))

    def commit(self):
        if self._db.erro_commit is not None:
            raise self._db.erro_commit
        for tipo, ref, dados, merge in self.operacoes:
            if tipo == 'update' and ref.id not in ref._tabela():
                raise NotFound(f"No document to update: {ref.id}")
        for tipo, ref, dados, merge in self.operacoes:
            if tipo == 'set':
                ref.set(dados, merge=merge)
            elif tipo == 'update':
                ref.update(dados)
            else:
                ref.delete()
        self._db.batches.append(self.operacoes)
        return []


class FakeFirestore:

    def __init__(self):
        self.dados = {}
        self.batches = []
        self.leituras = 0
        self.consultas = 0
        self.erro_commit = None

    def collection(self, nome):
        return FakeCollection(self, nome)

    def batch(self):
        return FakeBatch(self)

    @property
    def commits(self):
        return len(self.batches)

    # === Helpers dos testes ===

    def semear(self, colecao, doc_id, dados):
        self.dados.setdefault(colecao, {})[doc_id] = _resolver_dict(dados)

    def doc(self, colecao, doc_id):
        return self.dados.get(colecao, {}).get(doc_id)

    def todos(self, colecao):
        return list(self.dados.get(colecao, {}).values())
